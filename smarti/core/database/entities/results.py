"""
Learning result entity models.

- UserLessonResult: the latest answers a user gave for a lesson
- UserWrongQuestion: questions a user got wrong or skipped, kept for practice
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Field

from ..base import Base, NaiveDateTime, new_id, utc_now_naive


class UserLessonResultBase(Base):
    """Base fields for lesson results."""

    user_id: str = Field(index=True)
    lesson_id: str = Field(index=True)
    started_at: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=NaiveDateTime)
    answers: List[Optional[str]] = Field(
        default_factory=list, sa_type=JSON, description="Answer letters in question order, null when skipped"
    )
    right_questions: int = Field(default=0)
    total_questions: int = Field(default=0)
    system_step: int = Field(default=1)


class UserLessonResult(UserLessonResultBase, table=True):
    """Table: user_lesson_results"""

    __tablename__ = "user_lesson_results"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class UserWrongQuestionBase(Base):
    """Base fields for wrong questions."""

    user_id: str = Field(index=True)
    question_id: str = Field(index=True)
    lesson_category_id: Optional[str] = Field(default=None, index=True)
    is_null: bool = Field(default=False, description="True when the question was left unanswered")
    system_step: int = Field(default=1)


class UserWrongQuestion(UserWrongQuestionBase, table=True):
    """Table: user_wrong_questions"""

    __tablename__ = "user_wrong_questions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
