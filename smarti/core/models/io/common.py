"""
Shared wire helpers.

The web clients speak camelCase JSON while entities use snake_case
attributes.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel


class CamelModel(BaseModel):
    """Base for request and response models with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def to_wire(entity: Optional[SQLModel]) -> Optional[Dict[str, Any]]:
    """Dump an entity with camelCase keys; None stays None."""
    if entity is None:
        return None
    return {to_camel(key): value for key, value in entity.model_dump().items()}
