"""
Learning Endpoints.

Lesson content, quiz data, result submission, wrong question practice and
the leaderboard. Every endpoint works on the caller's system step.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from smarti.core.errors import NotFoundError
from smarti.core.models.io.common import to_wire
from smarti.core.models.io.learning import LessonResultSubmit, QuizData, TopUser, UserProgress, UserRanking
from smarti.core.services.learning import (
    add_results_to_user,
    get_categories,
    get_categories_for_online_lessons,
    get_lessons_of_category,
    get_online_lessons,
    get_quiz_data,
    get_top_users,
    get_user_progress,
    get_user_ranking,
    get_wrong_questions_by_category,
    remove_wrong_question,
)
from smarti.core.services.system_step import get_user_system_step
from smarti.server.services.deps import CurrentUserDep, OptionalUserDep, SessionDep, SystemStepCookie

router = APIRouter()


@router.get("/categories", summary="List Lesson Categories")
async def categories(session: SessionDep, user_id: OptionalUserDep, system_step_cookie: SystemStepCookie = None):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return [to_wire(category) for category in await get_categories(session, step)]


@router.get(
    "/categories/{category_id}/lessons",
    summary="Get Category Lessons",
    responses={404: {"description": "Category not found in the caller's step"}},
)
async def category_lessons(
    category_id: str, session: SessionDep, user_id: OptionalUserDep, system_step_cookie: SystemStepCookie = None
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    category = await get_lessons_of_category(session, category_id, step)
    if category is None:
        raise NotFoundError("Category not found")
    return category


@router.get(
    "/lessons/{lesson_id}/quiz",
    response_model=QuizData,
    response_model_by_alias=True,
    summary="Get Quiz Data",
    description="Question groups and questions of a lesson, with the caller's previous answers.",
)
async def quiz(
    lesson_id: str, session: SessionDep, user_id: OptionalUserDep, system_step_cookie: SystemStepCookie = None
) -> QuizData:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return await get_quiz_data(session, lesson_id, user_id, step)


@router.post(
    "/results",
    summary="Submit Lesson Results",
    description="Store the answers of a lesson and add experience and genius score.",
)
async def submit_results(
    payload: LessonResultSubmit,
    session: SessionDep,
    user_id: CurrentUserDep,
    system_step_cookie: SystemStepCookie = None,
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    result = await add_results_to_user(
        session,
        payload.lesson_id,
        user_id,
        payload.answers,
        payload.question_list,
        payload.started_at,
        system_step=step,
    )
    return to_wire(result)


@router.get(
    "/wrong-questions/{category_id}",
    response_model=QuizData,
    response_model_by_alias=True,
    summary="Practice Wrong Questions",
    description="Up to 30 questions of a category the caller answered wrong, as a single group.",
)
async def wrong_questions(
    category_id: str, session: SessionDep, user_id: CurrentUserDep, system_step_cookie: SystemStepCookie = None
) -> QuizData:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return await get_wrong_questions_by_category(session, user_id, category_id, step)


@router.delete("/wrong-questions/{question_id}", summary="Remove Wrong Question")
async def delete_wrong_question(
    question_id: str, session: SessionDep, user_id: CurrentUserDep, system_step_cookie: SystemStepCookie = None
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    removed = await remove_wrong_question(session, user_id, question_id, step)
    return {"success": True, "removed": removed}


@router.get(
    "/top-users",
    response_model=List[TopUser],
    response_model_by_alias=True,
    summary="Leaderboard",
)
async def top_users(
    session: SessionDep, user_id: OptionalUserDep, system_step_cookie: SystemStepCookie = None
) -> List[TopUser]:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return await get_top_users(session, step)


@router.get(
    "/ranking",
    response_model=UserRanking,
    response_model_by_alias=True,
    summary="My Ranking",
)
async def ranking(
    session: SessionDep, user_id: CurrentUserDep, system_step_cookie: SystemStepCookie = None
) -> UserRanking:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return await get_user_ranking(session, user_id, step)


@router.get(
    "/progress",
    response_model=UserProgress,
    response_model_by_alias=True,
    summary="My Progress",
    responses={404: {"description": "User not found"}},
)
async def progress(
    session: SessionDep, user_id: CurrentUserDep, system_step_cookie: SystemStepCookie = None
) -> UserProgress:
    step = await get_user_system_step(session, user_id, system_step_cookie)
    result = await get_user_progress(session, user_id, step)
    if result is None:
        raise NotFoundError("User not found")
    return result


@router.get("/online-lessons", summary="List Online Lessons")
async def online_lessons(
    session: SessionDep,
    user_id: OptionalUserDep,
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    system_step_cookie: SystemStepCookie = None,
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return await get_online_lessons(session, step, category_id)


@router.get("/online-lessons/categories", summary="Categories With Online Lessons")
async def online_lesson_categories(
    session: SessionDep, user_id: OptionalUserDep, system_step_cookie: SystemStepCookie = None
):
    step = await get_user_system_step(session, user_id, system_step_cookie)
    return await get_categories_for_online_lessons(session, step)
