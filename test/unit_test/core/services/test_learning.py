"""Unit tests for lesson results, rankings and practice data."""

from __future__ import annotations

import pytest

from smarti.core.database.entities import OnlineLesson, User, UserSettings, UserSystemStats, UserWrongQuestion
from smarti.core.database.repositories.learning import UserLessonResultRepository, UserWrongQuestionRepository
from smarti.core.database.repositories.users import UserSystemStatsRepository
from smarti.core.errors import NotFoundError
from smarti.core.services.learning import (
    WRONG_QUESTIONS_GROUP_ID,
    add_results_to_user,
    experience_for,
    genius_score_for,
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


class TestScoring:
    def test_experience_counts_answered_questions(self):
        assert experience_for(["a", "b", None, "c"]) == 30

    @pytest.mark.parametrize(
        "answers, expected",
        [
            ([], 0),
            (["b", "c"], 0),
            (["a", "a"], 10),
            (["a", "a", "a"], 18),
            (["a", "b", "a", "a"], 21),
            ([None, None, "a"], 5),
        ],
    )
    def test_genius_score(self, answers, expected):
        assert genius_score_for(answers) == expected


@pytest.mark.asyncio
class TestAddResults:
    async def test_records_result_stats_and_wrong_questions(self, session, user, lesson_content):
        questions = [question.id for question in lesson_content["questions"]]

        result = await add_results_to_user(session, "lesson-1", user.id, ["a", "b", None], questions)

        assert (result.right_questions, result.total_questions, result.system_step) == (1, 3, 1)
        stats = await UserSystemStatsRepository(session).get_for_step(user.id, 1)
        assert (stats.experience, stats.genius_score) == (20, 5)

        wrong = await UserWrongQuestionRepository(session).for_category(user.id, "cat-1", 1)
        by_question = {item.question_id: item for item in wrong}
        assert set(by_question) == {"q-2", "q-3"}
        assert by_question["q-3"].is_null is True
        assert by_question["q-2"].is_null is False

    async def test_second_run_updates_result_and_accumulates(self, session, user, lesson_content):
        questions = [question.id for question in lesson_content["questions"]]
        await add_results_to_user(session, "lesson-1", user.id, ["b", "b", "b"], questions)
        await add_results_to_user(session, "lesson-1", user.id, ["a", "a", "b"], questions)

        results = await UserLessonResultRepository(session).list(filters={"user_id": user.id})
        assert len(results) == 1
        assert results[0].right_questions == 2
        stats = await UserSystemStatsRepository(session).get_for_step(user.id, 1)
        assert stats.experience == 60
        wrong = await UserWrongQuestionRepository(session).list(filters={"user_id": user.id})
        assert len(wrong) == 3

    async def test_unknown_user(self, session, lesson_content):
        with pytest.raises(NotFoundError):
            await add_results_to_user(session, "lesson-1", "ghost", ["a"], ["q-1"])


@pytest.mark.asyncio
class TestPracticeData:
    async def test_quiz_data(self, session, user, lesson_content):
        await add_results_to_user(session, "lesson-1", user.id, ["a", "a", "a"], ["q-1", "q-2", "q-3"])

        quiz = await get_quiz_data(session, "lesson-1", user.id, 1)

        assert [group.id for group in quiz.question_groups] == ["group-1"]
        assert quiz.question_groups[0].category_type == "Verbal"
        assert set(quiz.questions_dict) == {"q-1", "q-2", "q-3"}
        assert quiz.user_previous_answers == ["a", "a", "a"]

    async def test_quiz_data_for_guest(self, session, lesson_content):
        quiz = await get_quiz_data(session, "lesson-1", None, 1)
        assert quiz.user_previous_answers is None

    async def test_wrong_questions_group(self, session, user, lesson_content, persist):
        await persist(UserWrongQuestion(user_id=user.id, question_id="q-2", lesson_category_id="cat-1", system_step=1))

        quiz = await get_wrong_questions_by_category(session, user.id, "cat-1", 1)

        group = quiz.question_groups[0]
        assert group.id == WRONG_QUESTIONS_GROUP_ID
        assert group.question_list == ["q-2"]
        assert group.category_type == "Verbal"
        assert list(quiz.questions_dict) == ["q-2"]

    async def test_remove_wrong_question(self, session, user, persist):
        await persist(UserWrongQuestion(user_id=user.id, question_id="q-9", system_step=1))
        assert await remove_wrong_question(session, user.id, "q-9", 1) == 1
        assert await remove_wrong_question(session, user.id, "q-9", 1) == 0


@pytest.mark.asyncio
class TestRankings:
    async def _seed(self, persist):
        await persist(
            User(id="u-a", email="a@example.com"),
            User(id="u-b", email="b@example.com"),
            User(id="u-c", email="c@example.com"),
            UserSystemStats(user_id="u-a", system_step=1, experience=50),
            UserSystemStats(user_id="u-b", system_step=1, experience=80),
            UserSystemStats(user_id="u-c", system_step=1, experience=50),
            UserSettings(user_id="u-b", system_step=1, avatar="/b.png"),
        )

    async def test_top_users(self, session, persist):
        await self._seed(persist)
        top = await get_top_users(session, 1)
        assert [entry.id for entry in top] == ["u-b", "u-a", "u-c"]
        assert top[0].avatar == "/b.png"
        assert top[1].avatar is None

    async def test_ranking_breaks_ties_by_user_id(self, session, persist):
        await self._seed(persist)
        ranking = await get_user_ranking(session, "u-c", 1)
        assert (ranking.user_rank, ranking.total_users) == (3, 3)

    async def test_ranking_without_stats(self, session):
        ranking = await get_user_ranking(session, "nobody", 1)
        assert (ranking.user_rank, ranking.total_users) == (None, 0)

    async def test_progress(self, session, user, persist):
        await persist(UserSystemStats(user_id=user.id, system_step=1, experience=40, genius_score=12))
        progress = await get_user_progress(session, user.id, 1)
        assert progress.user["email"] == "noa@example.com"
        assert progress.settings is None
        assert (progress.experience, progress.genius_score) == (40, 12)
        assert await get_user_progress(session, "ghost", 1) is None


@pytest.mark.asyncio
class TestContent:
    async def test_lessons_of_category(self, session, lesson_content):
        data = await get_lessons_of_category(session, "cat-1", 1)
        assert data["categoryType"] == "Verbal"
        assert [lesson["id"] for lesson in data["lessons"]] == ["lesson-1"]

    async def test_category_of_other_step(self, session, lesson_content):
        assert await get_lessons_of_category(session, "cat-1", 2) is None

    async def test_online_lessons(self, session, lesson_content, persist):
        await persist(
            OnlineLesson(id="ol-2", title="B", category_id="cat-1", order=2, system_step=1),
            OnlineLesson(id="ol-1", title="A", category_id="cat-1", order=1, system_step=1),
            OnlineLesson(id="ol-3", title="C", order=1, system_step=2),
        )

        lessons = await get_online_lessons(session, 1)
        assert [lesson["id"] for lesson in lessons] == ["ol-1", "ol-2"]
        assert lessons[0]["categoryType"] == "Verbal"
        assert lessons[0]["categoryImageSrc"] == ""

        categories = await get_categories_for_online_lessons(session, 1)
        assert categories == [{"id": "cat-1", "categoryType": "Verbal", "imageSrc": None}]
