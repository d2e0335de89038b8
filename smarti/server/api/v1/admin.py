"""
Admin CRUD Endpoints.

Every table the admin panel edits gets the same five routes under
``/api/{resource}``: list, create, read, update and delete. Lists follow the
react-admin simple REST conventions (``_start``, ``_end``, ``_sort``,
``_order`` and an ``X-Total-Count`` header).

Coupons, plans and the system configuration reuse the same routes with
extra payload rules.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import APIRouter, Query, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel

from smarti.core.database.repositories.base import SQLModelRepository
from smarti.core.errors import ApiError
from smarti.core.logging_config import get_logger
from smarti.core.models.io.common import to_wire
from smarti.core.services.admin_resources import (
    COUPONS,
    GENERIC_RESOURCES,
    PLANS,
    SYSTEM_CONFIG,
    AdminResource,
    apply_update,
    build_entity,
    coupon_payload,
    coupon_to_wire,
    plan_payload,
    sort_attribute,
    validate_new_coupon,
    validate_new_system_config,
)
from smarti.server.services.deps import AdminDep, SessionDep
from smarti.server.services.payload import read_json_object

logger = get_logger(__name__)

router = APIRouter()

Payload = Dict[str, Any]
Serializer = Callable[[Optional[SQLModel]], Optional[Payload]]


def _identity(payload: Payload) -> Payload:
    return payload


def _content_range(name: str, start: int, count: int, total: int) -> str:
    if count == 0:
        return f"{name} */{total}"
    return f"{name} {start}-{start + count - 1}/{total}"


async def _commit_or_fail(session, action: str, resource: AdminResource, strict: bool) -> None:
    """Commit the session; with ``strict`` a database failure becomes a 500 ``{error, details}``."""
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        if not strict:
            raise
        logger.error(f"Failed to {action} {resource.name}: {exc}")
        raise ApiError(f"Failed to {action} {resource.name}", 500, details=str(exc)) from exc


def register_resource(
    resource: AdminResource,
    serialize: Serializer = to_wire,
    prepare_create: Callable[[Payload], Payload] = _identity,
    prepare_update: Callable[[Payload], Payload] = _identity,
    strict_errors: bool = False,
) -> None:
    """Add the CRUD routes of ``resource`` to the admin router.

    Args:
        resource: Table to expose
        serialize: Turns a row into its wire shape
        prepare_create: Validates and rewrites a create payload before it is applied
        prepare_update: Rewrites an update payload before it is applied
        strict_errors: Report database failures on writes as ``{error, details}``
    """
    path = f"/{resource.name}"
    tags = ["admin"]

    async def list_rows(
        response: Response,
        session: SessionDep,
        _admin: AdminDep,
        start: int = Query(default=0, alias="_start", ge=0),
        end: Optional[int] = Query(default=None, alias="_end", ge=0),
        sort: Optional[str] = Query(default=None, alias="_sort"),
        order: str = Query(default="ASC", alias="_order"),
        ids: Optional[List[str]] = Query(default=None, alias="id"),
    ) -> List[Optional[Payload]]:
        repository = SQLModelRepository(session, resource.model)
        filters = {"id": ids} if ids else None
        total = await repository.count(filters)
        limit = max(end - start, 0) if end is not None else None
        rows = await repository.list(
            limit=limit, offset=start or None, filters=filters, sort=sort_attribute(sort), order=order
        )
        response.headers["X-Total-Count"] = str(total)
        response.headers["Content-Range"] = _content_range(resource.name, start, len(rows), total)
        return [serialize(row) for row in rows]

    async def create_row(request: Request, session: SessionDep, _admin: AdminDep) -> Optional[Payload]:
        payload = prepare_create(await read_json_object(request))
        entity = build_entity(resource, payload)
        session.add(entity)
        await _commit_or_fail(session, "create", resource, strict_errors)
        await session.refresh(entity)
        logger.info(f"Admin created {resource.name} {entity.id}")
        return serialize(entity)

    async def get_row(item_id: str, session: SessionDep, _admin: AdminDep) -> Optional[Payload]:
        return serialize(await session.get(resource.model, item_id))

    async def update_row(item_id: str, request: Request, session: SessionDep, _admin: AdminDep) -> Optional[Payload]:
        payload = prepare_update(await read_json_object(request))
        entity = await session.get(resource.model, item_id)
        if entity is None:
            return None
        apply_update(resource, entity, payload)
        session.add(entity)
        await _commit_or_fail(session, "update", resource, strict_errors)
        await session.refresh(entity)
        return serialize(entity)

    async def delete_row(item_id: str, session: SessionDep, _admin: AdminDep) -> Optional[Payload]:
        entity = await session.get(resource.model, item_id)
        if entity is None:
            return None
        wire = serialize(entity)
        await session.delete(entity)
        await _commit_or_fail(session, "delete", resource, strict_errors)
        logger.info(f"Admin deleted {resource.name} {item_id}")
        return wire

    router.add_api_route(path, list_rows, methods=["GET"], tags=tags, summary=f"List {resource.name}")
    router.add_api_route(path, create_row, methods=["POST"], tags=tags, summary=f"Create {resource.name}")
    router.add_api_route(f"{path}/{{item_id}}", get_row, methods=["GET"], tags=tags, summary=f"Get {resource.name}")
    router.add_api_route(
        f"{path}/{{item_id}}", update_row, methods=["PUT"], tags=tags, summary=f"Update {resource.name}"
    )
    router.add_api_route(
        f"{path}/{{item_id}}", delete_row, methods=["DELETE"], tags=tags, summary=f"Delete {resource.name}"
    )


def _prepare_new_coupon(payload: Mapping[str, Any]) -> Payload:
    validate_new_coupon(payload)
    return coupon_payload(payload)


def _prepare_new_system_config(payload: Mapping[str, Any]) -> Payload:
    validate_new_system_config(payload)
    return dict(payload)


for _resource in GENERIC_RESOURCES:
    register_resource(_resource)

register_resource(
    COUPONS,
    serialize=coupon_to_wire,
    prepare_create=_prepare_new_coupon,
    prepare_update=coupon_payload,
    strict_errors=True,
)
register_resource(
    PLANS,
    prepare_create=lambda payload: plan_payload(payload, creating=True),
    prepare_update=lambda payload: plan_payload(payload, creating=False),
)
register_resource(SYSTEM_CONFIG, prepare_create=_prepare_new_system_config)
