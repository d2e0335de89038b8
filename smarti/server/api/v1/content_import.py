"""
Content Import Endpoints.

Admin-only spreadsheet uploads (CSV or XLSX, multipart field ``file``):

- ``POST /lessons/import``: question groups and their lessons
- ``POST /questions/import``: questions
- ``POST /onlineLessons/import``: online lessons
"""

from typing import Optional

from fastapi import APIRouter, File, UploadFile

from smarti.core.errors import MalformedPayloadError
from smarti.core.logging_config import get_logger
from smarti.core.services.content_import import (
    NO_FILE,
    Row,
    import_lessons,
    import_online_lessons,
    import_questions,
    read_rows,
)
from smarti.server.services.deps import AdminDep, SessionDep

logger = get_logger(__name__)

router = APIRouter()

IMPORT_RESPONSES = {
    400: {"description": "No file, an unsupported or unreadable file, or an invalid row"},
    401: {"description": "Not signed in"},
    403: {"description": "Not an admin"},
}


async def _read_upload(file: Optional[UploadFile]) -> list[Row]:
    if file is None:
        raise MalformedPayloadError(NO_FILE)
    content = await file.read()
    logger.info(f"Importing {file.filename} ({len(content)} bytes)")
    return read_rows(file.filename, content)


@router.post(
    "/lessons/import",
    summary="Import Lessons",
    description="Create lessons and question groups from a spreadsheet. Bad rows are reported and skipped.",
    responses=IMPORT_RESPONSES,
)
async def lessons_import(session: SessionDep, _admin: AdminDep, file: Optional[UploadFile] = File(default=None)):
    return await import_lessons(session, await _read_upload(file))


@router.post(
    "/questions/import",
    summary="Import Questions",
    description="Create questions from a spreadsheet. Any bad row rejects the whole file.",
    responses=IMPORT_RESPONSES,
)
async def questions_import(session: SessionDep, _admin: AdminDep, file: Optional[UploadFile] = File(default=None)):
    return await import_questions(session, await _read_upload(file))


@router.post(
    "/onlineLessons/import",
    summary="Import Online Lessons",
    description="Create online lessons from a spreadsheet. Any bad row rejects the whole file.",
    responses=IMPORT_RESPONSES,
)
async def online_lessons_import(
    session: SessionDep, _admin: AdminDep, file: Optional[UploadFile] = File(default=None)
):
    return await import_online_lessons(session, await _read_upload(file))
