"""
Learning repositories.

Data access for lesson content, lesson results and wrong questions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.lessons import Lesson, LessonCategory, LessonQuestionGroup, OnlineLesson, Question
from ..entities.results import UserLessonResult, UserWrongQuestion
from .base import SQLModelRepository


class LessonCategoryRepository(SQLModelRepository[LessonCategory]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, LessonCategory)


class LessonRepository(SQLModelRepository[Lesson]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Lesson)


class LessonQuestionGroupRepository(SQLModelRepository[LessonQuestionGroup]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, LessonQuestionGroup)


class OnlineLessonRepository(SQLModelRepository[OnlineLesson]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OnlineLesson)


class QuestionRepository(SQLModelRepository[Question]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Question)

    async def get_many(self, question_ids: Sequence[str]) -> List[Question]:
        if not question_ids:
            return []
        stmt = select(Question).where(Question.id.in_(list(question_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class UserLessonResultRepository(SQLModelRepository[UserLessonResult]):
    """Repository for a user's latest result per lesson."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserLessonResult)

    async def get_for_lesson(self, user_id: str, lesson_id: str) -> Optional[UserLessonResult]:
        stmt = (
            select(UserLessonResult)
            .where(UserLessonResult.user_id == user_id, UserLessonResult.lesson_id == lesson_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()


class UserWrongQuestionRepository(SQLModelRepository[UserWrongQuestion]):
    """Repository for questions a user got wrong or skipped."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserWrongQuestion)

    async def get_for_question(self, user_id: str, question_id: str) -> Optional[UserWrongQuestion]:
        stmt = (
            select(UserWrongQuestion)
            .where(UserWrongQuestion.user_id == user_id, UserWrongQuestion.question_id == question_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def for_category(
        self, user_id: str, category_id: str, system_step: Optional[int] = None, limit: int = 30
    ) -> List[UserWrongQuestion]:
        stmt = select(UserWrongQuestion).where(
            UserWrongQuestion.user_id == user_id, UserWrongQuestion.lesson_category_id == category_id
        )
        if system_step is not None:
            stmt = stmt.where(UserWrongQuestion.system_step == system_step)
        stmt = stmt.order_by(UserWrongQuestion.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_topic(self, user_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Wrong answers of the given users per question topic type."""
        if not user_ids:
            return []
        stmt = (
            select(Question.topic_type, func.count())
            .select_from(UserWrongQuestion)
            .join(Question, Question.id == UserWrongQuestion.question_id, isouter=True)
            .where(UserWrongQuestion.user_id.in_(list(user_ids)))
            .group_by(Question.topic_type)
            .order_by(func.count().desc(), Question.topic_type)
        )
        rows = (await self.session.execute(stmt)).all()
        return [{"topic_type": topic_type, "count": int(count)} for topic_type, count in rows]

    async def count_by_category_and_topic(self, user_id: str) -> List[Dict[str, Any]]:
        """Wrong answers of one user per lesson category and question topic type."""
        stmt = (
            select(
                UserWrongQuestion.lesson_category_id, LessonCategory.category_type, Question.topic_type, func.count()
            )
            .select_from(UserWrongQuestion)
            .join(Question, Question.id == UserWrongQuestion.question_id, isouter=True)
            .join(LessonCategory, LessonCategory.id == UserWrongQuestion.lesson_category_id, isouter=True)
            .where(UserWrongQuestion.user_id == user_id)
            .group_by(UserWrongQuestion.lesson_category_id, LessonCategory.category_type, Question.topic_type)
            .order_by(func.count().desc(), LessonCategory.category_type, Question.topic_type)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {"category_id": category_id, "category_type": category_type, "topic_type": topic_type, "count": int(count)}
            for category_id, category_type, topic_type, count in rows
        ]
