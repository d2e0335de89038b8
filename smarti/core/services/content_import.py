"""
Bulk import of lesson content from spreadsheets.

The admin panel uploads CSV or XLSX files whose first row holds the column
names. Three imports exist:

- lessons: one question group per row, creating the lesson when no lesson
  of the same category, order and system step exists yet. Bad rows are
  reported and skipped.
- questions and online lessons: every row becomes a new record. A bad row
  rejects the whole file and nothing is stored.

Lesson categories may be given by their ``category_type`` name.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from smarti.core.database.base import new_id
from smarti.core.database.entities.lessons import Lesson, LessonCategory, LessonQuestionGroup, OnlineLesson, Question
from smarti.core.errors import MalformedPayloadError
from smarti.core.models.io.common import to_wire

logger = logging.getLogger(__name__)

NO_FILE = "No file uploaded."
UNSUPPORTED_FILE = "Unsupported file type. Please upload a CSV or XLSX file."
UNPARSEABLE_FILE = "Failed to parse file."
NO_ROWS = "No valid data found in the file after parsing."

QUESTION_FORMATS = ("REGULAR", "SHAPES", "COMPREHENSION", "MATH")
DEFAULT_QUESTION_FORMAT = "REGULAR"
OPTION_PREFIX = "options."
VALID_STEPS = (1, 2, 3)

# normalized header -> column name used by the lesson import
LESSON_COLUMNS = {
    "questionids": "questionIds",
    "categorytype": "categoryType",
    "order": "order",
    "time": "time",
    "duration": "time",
    "groupcategorytype": "groupCategoryType",
    "systemstep": "systemStep",
}

Row = Dict[str, str]


# =====================================================================
# Spreadsheet parsing
# =====================================================================


def read_rows(filename: Optional[str], content: bytes) -> List[Row]:
    """Rows of the first sheet as ``{column: text}``, blank cells omitted.

    Raises:
        MalformedPayloadError: The file is not CSV or XLSX, cannot be parsed
            or holds no data rows
    """
    name = (filename or "").lower()
    try:
        if name.endswith(".csv"):
            frame = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, encoding="utf-8")
        elif name.endswith(".xlsx"):
            frame = pd.read_excel(io.BytesIO(content), dtype=str, engine="openpyxl")
        else:
            raise MalformedPayloadError(UNSUPPORTED_FILE)
    except pd.errors.EmptyDataError as exc:
        raise MalformedPayloadError(NO_ROWS) from exc
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError, KeyError, zipfile.BadZipFile) as exc:
        logger.warning(f"Could not parse uploaded file {filename}: {exc}")
        raise MalformedPayloadError(UNPARSEABLE_FILE) from exc

    rows: List[Row] = []
    for record in frame.fillna("").to_dict(orient="records"):
        row = {str(key).strip(): str(value).strip() for key, value in record.items()}
        row = {key: value for key, value in row.items() if key and value}
        if row:
            rows.append(row)
    if not rows:
        raise MalformedPayloadError(NO_ROWS)
    return rows


def _parse_int(text: Optional[str]) -> Optional[int]:
    try:
        return int(float(text)) if text else None
    except (ValueError, OverflowError):
        return None


def _strip_edge_digits(text: str) -> str:
    return re.sub(r"\d+$", "", re.sub(r"^\d+", "", text)).strip()


async def _category_ids(session: AsyncSession) -> Dict[str, str]:
    """Category id by ``category_type``."""
    categories = (await session.execute(select(LessonCategory))).scalars().all()
    return {category.category_type: category.id for category in categories}


def resolve_category(category_ids: Dict[str, str], category_type: str) -> Optional[str]:
    """Category id for a name, tolerating digits stuck to either end of it."""
    if not category_type:
        return None
    if category_type in category_ids:
        return category_ids[category_type]
    wanted = _strip_edge_digits(category_type)
    for name, category_id in category_ids.items():
        if _strip_edge_digits(name) == wanted:
            return category_id
    return None


# =====================================================================
# Lessons
# =====================================================================


def _standardize_lesson_row(row: Row) -> Row:
    out: Row = {}
    for header, value in row.items():
        key = re.sub(r"[\s._]+", "", header.lower())
        out[LESSON_COLUMNS.get(key, header)] = value
    return out


async def _existing_question_ids(session: AsyncSession, question_ids: Sequence[str]) -> set[str]:
    unique = list(dict.fromkeys(question_ids))
    found: set[str] = set()
    for start in range(0, len(unique), 500):
        chunk = unique[start : start + 500]
        result = await session.execute(select(Question.id).where(Question.id.in_(chunk)))
        found.update(result.scalars().all())
    return found


def _split_ids(text: Optional[str]) -> List[str]:
    return [part for part in re.split(r"[,;\s]+", text or "") if part]


async def import_lessons(session: AsyncSession, rows: List[Row]) -> Dict[str, Any]:
    """Create question groups, and their lessons when missing, from spreadsheet rows.

    Columns: ``categoryType``, ``groupCategoryType``, ``order``, ``time``
    (or ``duration``, seconds), ``systemStep`` and ``questionIds``
    (separated by commas, semicolons or whitespace). Only question ids that
    exist are kept. The group counts towards ``groupCategoryType`` when it
    is given, else towards the lesson's category.

    Returns:
        ``{message, created, errors}``; errors carry the 1-based spreadsheet
        row, counting the header row
    """
    rows = [_standardize_lesson_row(row) for row in rows]
    category_ids = await _category_ids(session)
    known_questions = await _existing_question_ids(
        session, [question_id for row in rows for question_id in _split_ids(row.get("questionIds"))]
    )

    created: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []
    for index, row in enumerate(rows):
        line = index + 2
        category_type = row.get("categoryType", "")
        category_id = resolve_category(category_ids, category_type)
        if not category_id:
            errors.append({"row": line, "message": f"Unknown categoryType: {category_type}"})
            continue
        group_category_type = row.get("groupCategoryType", "")
        group_category_id = resolve_category(category_ids, group_category_type) if group_category_type else category_id
        if not group_category_id:
            errors.append({"row": line, "message": f"Unknown groupCategoryType: {group_category_type}"})
            continue
        order = _parse_int(row.get("order"))
        if order is None:
            errors.append({"row": line, "message": "Invalid order"})
            continue
        time = _parse_int(row.get("time"))
        if time is None:
            errors.append({"row": line, "message": "Invalid time"})
            continue
        system_step = _parse_int(row.get("systemStep"))
        if system_step not in VALID_STEPS:
            errors.append({"row": line, "message": "Invalid or missing systemStep (must be 1, 2, or 3)"})
            continue
        question_ids = [
            question_id for question_id in _split_ids(row.get("questionIds")) if question_id in known_questions
        ]
        if not question_ids:
            errors.append({"row": line, "message": "No valid questionIds provided"})
            continue

        stmt = select(Lesson).where(
            Lesson.lesson_category_id == category_id,
            Lesson.lesson_order == order,
            Lesson.system_step == system_step,
        )
        lesson = (await session.execute(stmt)).scalars().first()
        if lesson is None:
            lesson = Lesson(lesson_category_id=category_id, lesson_order=order, system_step=system_step)
            session.add(lesson)
            await session.flush()

        session.add(
            LessonQuestionGroup(
                lesson_id=lesson.id,
                category_id=group_category_id,
                question_list=question_ids,
                time=time,
                system_step=system_step,
            )
        )
        created.append({"lessonId": lesson.id, "order": order})
        await session.commit()

    logger.info(f"Lesson import: {len(rows)} rows, {len(created)} created, {len(errors)} errors")
    return {
        "message": f"Processed {len(rows)} rows. Created {len(created)} lessons. {len(errors)} errors.",
        "created": created,
        "errors": errors,
    }


# =====================================================================
# Questions and online lessons
# =====================================================================


def parse_question_row(row: Row, line: int) -> Question:
    """Build a question from a row with ``question``, ``format``, ``options.a``..``options.d`` and friends.

    Unknown formats fall back to ``REGULAR``.

    Raises:
        MalformedPayloadError: The question text or the format is missing
    """
    question = row.get("question")
    if not question:
        raise MalformedPayloadError(f"Row {line}: Question content is missing.")
    raw_format = row.get("format")
    if not raw_format:
        raise MalformedPayloadError(f"Row {line}: Format could not be determined or is missing.")
    question_format = raw_format.upper()
    if question_format not in QUESTION_FORMATS:
        logger.warning(f"Row {line}: unrecognized format {raw_format!r}, using {DEFAULT_QUESTION_FORMAT}")
        question_format = DEFAULT_QUESTION_FORMAT

    options = {
        header[len(OPTION_PREFIX) :]: value for header, value in row.items() if header.startswith(OPTION_PREFIX)
    }
    return Question(
        id=row.get("id") or new_id(),
        question=question,
        content=row.get("content"),
        format=question_format,
        options=options or None,
        topic_type=row.get("topicType"),
        explanation=row.get("explanation"),
    )


def parse_online_lesson_row(row: Row, line: int, category_ids: Dict[str, str]) -> OnlineLesson:
    """Build an online lesson from a row.

    ``categoryId`` may hold a category id or name; ``categoryType`` a name.
    ``order`` (or ``sortOrder``) defaults to 0 when it is not a number.

    Raises:
        MalformedPayloadError: ``systemStep`` is missing or not 1-3, or
            ``title``, ``link`` or the category is missing
    """
    category_id = None
    if row.get("categoryId"):
        category_id = category_ids.get(row["categoryId"], row["categoryId"])
    if row.get("categoryType") in category_ids:
        category_id = category_ids[row["categoryType"]]

    raw_step = row.get("systemStep")
    system_step = _parse_int(raw_step)
    if raw_step and system_step not in VALID_STEPS:
        raise MalformedPayloadError(f"Row {line}: systemStep must be 1, 2 or 3.")
    if not row.get("title"):
        raise MalformedPayloadError(f"Row {line}: title is required.")
    if not row.get("link"):
        raise MalformedPayloadError(f"Row {line}: link is required.")
    if not category_id:
        raise MalformedPayloadError(f"Row {line}: categoryId/categoryType is required or invalid.")
    if system_step is None:
        raise MalformedPayloadError(f"Row {line}: systemStep is missing.")

    return OnlineLesson(
        id=row.get("id") or new_id(),
        title=row["title"],
        description=row.get("description"),
        link=row["link"],
        category_id=category_id,
        order=_parse_int(row.get("order") or row.get("sortOrder")) or 0,
        system_step=system_step,
    )


async def import_questions(session: AsyncSession, rows: List[Row]) -> Dict[str, Any]:
    questions = [parse_question_row(row, index + 2) for index, row in enumerate(rows)]
    session.add_all(questions)
    await session.commit()
    logger.info(f"Imported {len(questions)} questions")
    return {
        "message": f"{len(questions)} questions imported successfully!",
        "count": len(questions),
        "data": [to_wire(question) for question in questions],
    }


async def import_online_lessons(session: AsyncSession, rows: List[Row]) -> Dict[str, Any]:
    category_ids = await _category_ids(session)
    lessons = [parse_online_lesson_row(row, index + 2, category_ids) for index, row in enumerate(rows)]
    session.add_all(lessons)
    await session.commit()
    logger.info(f"Imported {len(lessons)} online lessons")
    return {
        "message": f"{len(lessons)} online lessons imported successfully!",
        "count": len(lessons),
        "data": [to_wire(lesson) for lesson in lessons],
    }
