"""
Lesson results, experience and practice data.

Answers are letters ``a``-``d`` or None for a skipped question; ``a`` is
always the correct answer (options are shuffled on the client). Experience
and genius score are tracked per system step.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from smarti.core.database.base import utc_now_naive
from smarti.core.database.entities.lessons import Lesson, LessonCategory, LessonQuestionGroup, OnlineLesson
from smarti.core.database.entities.results import UserLessonResult, UserWrongQuestion
from smarti.core.database.entities.users import User, UserSettings, UserSystemStats
from smarti.core.database.repositories.learning import (
    LessonCategoryRepository,
    QuestionRepository,
    UserLessonResultRepository,
    UserWrongQuestionRepository,
)
from smarti.core.database.repositories.users import (
    UserRepository,
    UserSettingsRepository,
    UserSystemStatsRepository,
)
from smarti.core.errors import NotFoundError
from smarti.core.models.domain.enums import CORRECT_ANSWER
from smarti.core.models.io.common import to_wire
from smarti.core.models.io.learning import QuestionGroupOut, QuizData, TopUser, UserProgress, UserRanking

from .system_step import get_user_system_step

logger = logging.getLogger(__name__)

EXPERIENCE_PER_ANSWER = 10
GENIUS_BASE_POINTS = 5
WRONG_QUESTIONS_LIMIT = 30
WRONG_QUESTIONS_GROUP_ID = "wrong-questions"
TOP_USERS_LIMIT = 10


def experience_for(answers: Sequence[Optional[str]]) -> int:
    """Experience earned: points for every answered question."""
    return sum(EXPERIENCE_PER_ANSWER for answer in answers if answer is not None)


def genius_score_for(answers: Sequence[Optional[str]]) -> int:
    """Genius score earned by a run of answers.

    Every correct answer is worth 5 points; from the third question on a
    correct answer also earns a third of the score accumulated so far, so
    late streaks are rewarded.
    """
    score = 0
    for index, answer in enumerate(answers):
        if answer != CORRECT_ANSWER:
            continue
        if index <= 1:
            score += GENIUS_BASE_POINTS
        else:
            score += GENIUS_BASE_POINTS + int(math.floor(score / 3 + 0.5))
    return score


async def _question_categories(session: AsyncSession, lesson_id: str, system_step: int) -> Dict[str, str]:
    """Map question id to the category of the first group of the lesson listing it."""
    stmt = select(LessonQuestionGroup).where(
        LessonQuestionGroup.lesson_id == lesson_id, LessonQuestionGroup.system_step == system_step
    )
    result = await session.execute(stmt)
    mapping: Dict[str, str] = {}
    for group in result.scalars().all():
        if not group.category_id or not group.question_list:
            continue
        for question_id in group.question_list:
            if question_id and question_id not in mapping:
                mapping[question_id] = group.category_id
    return mapping


async def add_results_to_user(
    session: AsyncSession,
    lesson_id: str,
    user_id: str,
    answers: Sequence[Optional[str]],
    question_list: Sequence[str],
    started_at: Optional[datetime] = None,
    system_step: Optional[int] = None,
) -> UserLessonResult:
    """Record a finished lesson for ``user_id``.

    Upserts the lesson result, adds experience and genius score to the
    user's stats for the step and remembers every wrong or skipped question
    once per user for later practice.

    Raises:
        NotFoundError: The user does not exist
    """
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found.")

    step = system_step if system_step is not None else await get_user_system_step(session, user_id)
    now = utc_now_naive()
    answers = list(answers)
    right_questions = sum(1 for answer in answers if answer == CORRECT_ANSWER)

    results = UserLessonResultRepository(session)
    lesson_result = await results.get_for_lesson(user_id, lesson_id)
    if lesson_result is None:
        lesson_result = UserLessonResult(user_id=user_id, lesson_id=lesson_id)
    lesson_result.started_at = started_at
    lesson_result.completed_at = now
    lesson_result.answers = answers
    lesson_result.right_questions = right_questions
    lesson_result.total_questions = len(answers)
    lesson_result.system_step = step
    lesson_result.created_at = now
    session.add(lesson_result)

    stats_repository = UserSystemStatsRepository(session)
    stats = await stats_repository.get_for_step(user_id, step)
    if stats is None:
        stats = UserSystemStats(user_id=user_id, system_step=step)
    stats.experience = (stats.experience or 0) + experience_for(answers)
    stats.genius_score = (stats.genius_score or 0) + genius_score_for(answers)
    stats.updated_at = now
    session.add(stats)

    question_categories = await _question_categories(session, lesson_id, step)
    wrong_questions = UserWrongQuestionRepository(session)
    recorded = set()
    for index, answer in enumerate(answers):
        if answer == CORRECT_ANSWER or index >= len(question_list):
            continue
        question_id = question_list[index]
        if question_id in recorded:
            continue
        recorded.add(question_id)
        if await wrong_questions.get_for_question(user_id, question_id) is not None:
            continue
        session.add(
            UserWrongQuestion(
                user_id=user_id,
                question_id=question_id,
                system_step=step,
                lesson_category_id=question_categories.get(question_id),
                is_null=answer is None,
            )
        )

    await session.commit()
    await session.refresh(lesson_result)
    logger.info(
        f"Saved lesson {lesson_id} result for user {user_id}: {right_questions}/{len(answers)} in step {step}"
    )
    return lesson_result


async def get_quiz_data(
    session: AsyncSession, lesson_id: str, user_id: Optional[str], system_step: int
) -> QuizData:
    """Question groups, questions and the user's previous answers for a lesson."""
    previous_answers = None
    if user_id:
        stmt = (
            select(UserLessonResult)
            .where(
                UserLessonResult.user_id == user_id,
                UserLessonResult.lesson_id == lesson_id,
                UserLessonResult.system_step == system_step,
            )
            .order_by(UserLessonResult.created_at.desc())
            .limit(1)
        )
        previous = (await session.execute(stmt)).scalars().first()
        previous_answers = previous.answers if previous is not None else None

    stmt = (
        select(LessonQuestionGroup, LessonCategory.category_type)
        .join(LessonCategory, LessonCategory.id == LessonQuestionGroup.category_id, isouter=True)
        .where(LessonQuestionGroup.lesson_id == lesson_id, LessonQuestionGroup.system_step == system_step)
        .order_by(LessonQuestionGroup.created_at.asc())
    )
    rows = (await session.execute(stmt)).all()
    groups = [
        QuestionGroupOut(
            id=group.id,
            lesson_id=group.lesson_id,
            category_id=group.category_id,
            category_type=category_type,
            question_list=list(group.question_list or []),
            time=group.time,
            system_step=group.system_step,
            created_at=group.created_at,
        )
        for group, category_type in rows
    ]

    question_ids = [question_id for group in groups for question_id in group.question_list]
    questions = await QuestionRepository(session).get_many(question_ids)
    return QuizData(
        question_groups=groups,
        questions_dict={question.id: to_wire(question) for question in questions},
        user_previous_answers=previous_answers,
    )


async def get_wrong_questions_by_category(
    session: AsyncSession, user_id: str, category_id: str, system_step: int
) -> QuizData:
    """Up to 30 practice questions the user got wrong in a category, as one group."""
    wrong = await UserWrongQuestionRepository(session).for_category(
        user_id, category_id, system_step, limit=WRONG_QUESTIONS_LIMIT
    )
    question_ids = [item.question_id for item in wrong]
    questions = await QuestionRepository(session).get_many(question_ids)
    category = await LessonCategoryRepository(session).get_by_id(category_id)

    group = QuestionGroupOut(
        id=WRONG_QUESTIONS_GROUP_ID,
        lesson_id=WRONG_QUESTIONS_GROUP_ID,
        category_id=category_id,
        category_type=category.category_type if category is not None else None,
        question_list=question_ids,
        time=0,
        system_step=system_step,
        created_at=utc_now_naive(),
    )
    return QuizData(
        question_groups=[group],
        questions_dict={question.id: to_wire(question) for question in questions},
        user_previous_answers=None,
    )


async def remove_wrong_question(session: AsyncSession, user_id: str, question_id: str, system_step: int) -> int:
    """Forget a wrong question once the user answered it correctly in practice."""
    stmt = delete(UserWrongQuestion).where(
        UserWrongQuestion.user_id == user_id,
        UserWrongQuestion.question_id == question_id,
        UserWrongQuestion.system_step == system_step,
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount or 0


async def get_top_users(session: AsyncSession, system_step: int) -> List[TopUser]:
    """Leaderboard: the 10 users with the most experience in the step."""
    stmt = (
        select(User.id, User.email, UserSystemStats.experience, UserSettings.avatar)
        .join(User, User.id == UserSystemStats.user_id)
        .join(
            UserSettings,
            and_(UserSettings.user_id == User.id, UserSettings.system_step == system_step),
            isouter=True,
        )
        .where(UserSystemStats.system_step == system_step)
        .order_by(UserSystemStats.experience.desc(), User.id.asc())
        .limit(TOP_USERS_LIMIT)
    )
    rows = (await session.execute(stmt)).all()
    return [TopUser(id=row[0], email=row[1], experience=row[2], avatar=row[3]) for row in rows]


async def get_user_ranking(session: AsyncSession, user_id: str, system_step: int) -> UserRanking:
    """Position of the user on the step's leaderboard.

    Users with more experience rank higher; equal experience is ordered by
    user id.
    """
    stats = await UserSystemStatsRepository(session).get_for_step(user_id, system_step)
    if stats is None:
        return UserRanking(user_rank=None, total_users=0)

    higher = select(func.count()).select_from(UserSystemStats).where(
        UserSystemStats.system_step == system_step,
        or_(
            UserSystemStats.experience > stats.experience,
            and_(UserSystemStats.experience == stats.experience, UserSystemStats.user_id < user_id),
        ),
    )
    total = select(func.count()).select_from(UserSystemStats).where(UserSystemStats.system_step == system_step)
    higher_count = (await session.execute(higher)).scalar_one()
    total_users = (await session.execute(total)).scalar_one()
    return UserRanking(user_rank=int(higher_count) + 1, total_users=int(total_users))


async def get_user_progress(session: AsyncSession, user_id: str, system_step: int) -> Optional[UserProgress]:
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        return None
    user_settings = await UserSettingsRepository(session).get_for_step(user_id, system_step)
    stats = await UserSystemStatsRepository(session).get_for_step(user_id, system_step)
    return UserProgress(
        user=to_wire(user),
        settings=to_wire(user_settings),
        experience=stats.experience if stats is not None else 0,
        genius_score=stats.genius_score if stats is not None else 0,
    )


async def get_categories(session: AsyncSession, system_step: int) -> List[LessonCategory]:
    stmt = (
        select(LessonCategory)
        .where(LessonCategory.system_step == system_step)
        .order_by(LessonCategory.order.asc(), LessonCategory.category_type.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def get_lessons_of_category(
    session: AsyncSession, category_id: str, system_step: int
) -> Optional[Dict[str, Any]]:
    """A category of the step with its lessons in order, or None."""
    category = await LessonCategoryRepository(session).get_by_id(category_id)
    if category is None or category.system_step != system_step:
        return None
    stmt = (
        select(Lesson)
        .where(Lesson.lesson_category_id == category_id, Lesson.system_step == system_step)
        .order_by(Lesson.lesson_order.asc())
    )
    lessons = (await session.execute(stmt)).scalars().all()
    data = to_wire(category)
    data["lessons"] = [to_wire(lesson) for lesson in lessons]
    return data


async def get_online_lessons(
    session: AsyncSession, system_step: int, category_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Online lessons of the step, optionally of one category, with category details."""
    stmt = (
        select(OnlineLesson, LessonCategory)
        .join(LessonCategory, LessonCategory.id == OnlineLesson.category_id, isouter=True)
        .where(OnlineLesson.system_step == system_step)
    )
    if category_id:
        stmt = stmt.where(OnlineLesson.category_id == category_id)
    stmt = stmt.order_by(OnlineLesson.order.asc(), OnlineLesson.title.asc())
    rows = (await session.execute(stmt)).all()

    lessons = []
    for online_lesson, category in rows:
        data = to_wire(online_lesson)
        data["categoryType"] = category.category_type if category is not None else ""
        data["categoryImageSrc"] = (category.image_src or "") if category is not None else ""
        lessons.append(data)
    return lessons


async def get_categories_for_online_lessons(session: AsyncSession, system_step: int) -> List[Dict[str, Any]]:
    """Categories of the step that have at least one online lesson."""
    stmt = select(OnlineLesson.category_id).where(OnlineLesson.system_step == system_step)
    with_lessons = {row for row in (await session.execute(stmt)).scalars().all() if row}
    return [
        {"id": category.id, "categoryType": category.category_type, "imageSrc": category.image_src}
        for category in await get_categories(session, system_step)
        if category.id in with_lessons
    ]
