from __future__ import annotations

import io

import pandas as pd
import pytest
from sqlmodel import select

from smarti.core.database.entities import Lesson, LessonQuestionGroup, OnlineLesson, Question
from smarti.core.errors import MalformedPayloadError
from smarti.core.services.content_import import (
    NO_ROWS,
    UNPARSEABLE_FILE,
    UNSUPPORTED_FILE,
    import_lessons,
    import_online_lessons,
    import_questions,
    parse_online_lesson_row,
    parse_question_row,
    read_rows,
    resolve_category,
)


class TestReadRows:
    def test_csv(self):
        content = b"question,format,options.a\nWhat is 2+2?,math,4\n,,\nName a colour, regular ,\n"

        rows = read_rows("questions.CSV", content)

        assert rows == [
            {"question": "What is 2+2?", "format": "math", "options.a": "4"},
            {"question": "Name a colour", "format": "regular"},
        ]

    def test_xlsx(self):
        buffer = io.BytesIO()
        frame = pd.DataFrame({"title": ["Intro", "Advanced"], "systemStep": [1, 2], "description": ["Start", None]})
        frame.to_excel(buffer, index=False, engine="openpyxl")

        rows = read_rows("lessons.xlsx", buffer.getvalue())

        assert rows == [
            {"title": "Intro", "systemStep": "1", "description": "Start"},
            {"title": "Advanced", "systemStep": "2"},
        ]

    def test_unsupported_file_type(self):
        with pytest.raises(MalformedPayloadError, match=UNSUPPORTED_FILE):
            read_rows("notes.txt", b"question\nHello\n")

    @pytest.mark.parametrize("content", [b"", b"question,format\n"])
    def test_no_rows(self, content):
        with pytest.raises(MalformedPayloadError, match=NO_ROWS):
            read_rows("questions.csv", content)

    def test_broken_workbook(self):
        with pytest.raises(MalformedPayloadError, match=UNPARSEABLE_FILE):
            read_rows("lessons.xlsx", b"not a workbook")


@pytest.mark.parametrize(
    "name, expected",
    [("Verbal", "cat-1"), ("2Verbal", "cat-1"), ("Verbal3", "cat-1"), ("Quant", None), ("", None)],
)
def test_resolve_category(name, expected):
    assert resolve_category({"Verbal": "cat-1", "Math": "cat-2"}, name) == expected


@pytest.mark.asyncio
class TestImportLessons:
    async def test_rows_become_groups(self, session, lesson_content):
        rows = [
            {
                "Category Type": "Verbal",
                "Order": "1",
                "Duration": "90",
                "System Step": "1",
                "Question IDs": "q-1, q-2 q-missing",
            },
            {"categoryType": "2Verbal", "order": "2", "time": "60", "systemStep": "1", "questionIds": "q-3"},
        ]

        result = await import_lessons(session, rows)

        assert result["message"] == "Processed 2 rows. Created 2 lessons. 0 errors."
        lessons = (await session.execute(select(Lesson).order_by(Lesson.lesson_order))).scalars().all()
        assert [lesson.lesson_order for lesson in lessons] == [1, 2]
        assert result["created"][0] == {"lessonId": "lesson-1", "order": 1}
        groups = (
            (await session.execute(select(LessonQuestionGroup).where(LessonQuestionGroup.lesson_id == "lesson-1")))
            .scalars()
            .all()
        )
        assert sorted(group.question_list for group in groups) == [["q-1", "q-2"], ["q-1", "q-2", "q-3"]]

    async def test_bad_rows_are_reported_and_skipped(self, session, lesson_content):
        good = {"categoryType": "Verbal", "order": "4", "time": "60", "systemStep": "1", "questionIds": "q-1"}
        rows = [
            {**good, "categoryType": "Quant"},
            {**good, "groupCategoryType": "Science"},
            {**good, "order": "first"},
            {**good, "time": ""},
            {**good, "systemStep": "5"},
            {**good, "questionIds": "q-missing"},
            good,
        ]

        result = await import_lessons(session, rows)

        assert result["errors"] == [
            {"row": 2, "message": "Unknown categoryType: Quant"},
            {"row": 3, "message": "Unknown groupCategoryType: Science"},
            {"row": 4, "message": "Invalid order"},
            {"row": 5, "message": "Invalid time"},
            {"row": 6, "message": "Invalid or missing systemStep (must be 1, 2, or 3)"},
            {"row": 7, "message": "No valid questionIds provided"},
        ]
        assert len(result["created"]) == 1


class TestQuestionRows:
    def test_options_and_format(self):
        row = {"question": "2+2?", "format": "math", "options.a": "4", "options.b": "5", "topicType": "arithmetic"}

        question = parse_question_row(row, 2)

        assert question.format == "MATH"
        assert question.options == {"a": "4", "b": "5"}
        assert question.topic_type == "arithmetic"

    def test_unknown_format_falls_back(self):
        assert parse_question_row({"question": "Why?", "format": "riddle"}, 2).format == "REGULAR"

    @pytest.mark.parametrize(
        "row, message",
        [
            ({"format": "math"}, "Row 3: Question content is missing."),
            ({"question": "Why?"}, "Row 3: Format could not be determined or is missing."),
        ],
    )
    def test_required_columns(self, row, message):
        with pytest.raises(MalformedPayloadError) as exc_info:
            parse_question_row(row, 3)
        assert exc_info.value.message == message


class TestOnlineLessonRows:
    CATEGORIES = {"Verbal": "cat-1"}

    def test_category_by_name(self):
        row = {"title": "Intro", "link": "https://video", "categoryType": "Verbal", "systemStep": "2", "order": "3"}

        lesson = parse_online_lesson_row(row, 2, self.CATEGORIES)

        assert (lesson.category_id, lesson.system_step, lesson.order) == ("cat-1", 2, 3)

    @pytest.mark.parametrize(
        "missing, message",
        [
            ("title", "Row 2: title is required."),
            ("link", "Row 2: link is required."),
            ("categoryId", "Row 2: categoryId/categoryType is required or invalid."),
            ("systemStep", "Row 2: systemStep is missing."),
        ],
    )
    def test_required_columns(self, missing, message):
        row = {"title": "Intro", "link": "https://video", "categoryId": "cat-1", "systemStep": "1"}
        del row[missing]

        with pytest.raises(MalformedPayloadError) as exc_info:
            parse_online_lesson_row(row, 2, self.CATEGORIES)
        assert exc_info.value.message == message

    def test_step_out_of_range(self):
        row = {"title": "Intro", "link": "https://video", "categoryId": "cat-1", "systemStep": "4"}
        with pytest.raises(MalformedPayloadError, match="systemStep must be 1, 2 or 3"):
            parse_online_lesson_row(row, 2, self.CATEGORIES)


@pytest.mark.asyncio
class TestImportRecords:
    async def test_questions(self, session):
        rows = [{"question": "A?", "format": "regular"}, {"question": "B?", "format": "shapes"}]

        result = await import_questions(session, rows)

        assert result["count"] == 2
        assert result["message"] == "2 questions imported successfully!"
        stored = (await session.execute(select(Question))).scalars().all()
        assert sorted(question.question for question in stored) == ["A?", "B?"]

    async def test_one_bad_row_stores_nothing(self, session, lesson_content):
        rows = [
            {"title": "Intro", "link": "https://video", "categoryType": "Verbal", "systemStep": "1"},
            {"title": "Broken", "categoryType": "Verbal", "systemStep": "1"},
        ]

        with pytest.raises(MalformedPayloadError, match="Row 3: link is required."):
            await import_online_lessons(session, rows)
        assert (await session.execute(select(OnlineLesson))).scalars().all() == []
