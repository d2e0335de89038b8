"""Request and response models for the learning flow."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import CamelModel


class QuestionGroupOut(CamelModel):
    id: str
    lesson_id: str
    category_id: Optional[str] = None
    category_type: Optional[str] = None
    question_list: List[str] = Field(default_factory=list)
    time: int = 0
    system_step: int
    created_at: datetime


class QuizData(CamelModel):
    """Everything the quiz page needs for one lesson."""

    question_groups: List[QuestionGroupOut]
    questions_dict: Dict[str, Dict[str, Any]]
    user_previous_answers: Optional[List[Optional[str]]] = None


class LessonResultSubmit(CamelModel):
    lesson_id: str
    answers: List[Optional[str]]
    question_list: List[str]
    started_at: Optional[datetime] = None


class TopUser(CamelModel):
    id: str
    email: str
    experience: int
    avatar: Optional[str] = None


class UserRanking(CamelModel):
    user_rank: Optional[int] = None
    total_users: int = 0


class UserProgress(CamelModel):
    user: Dict[str, Any]
    settings: Optional[Dict[str, Any]] = None
    experience: int = 0
    genius_score: int = 0
