"""
Lesson content entity models.

This module contains the database entities for learning content:
- LessonCategory: a subject area shown on the learn page
- Lesson: an ordered lesson inside a category
- LessonQuestionGroup: a timed group of questions belonging to a lesson
- Question: a single multiple-choice question
- OnlineLesson: a recorded or live lesson link
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import JSON
from sqlmodel import Field

from ..base import Base, NaiveDateTime, new_id, utc_now_naive


class LessonCategoryBase(Base):
    """Base fields for lesson categories."""

    category_type: str = Field(description="Category name shown to learners")
    title: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    image_src: Optional[str] = Field(default=None, description="Category image URL")
    order: int = Field(default=0, description="Sort order inside the system step")
    system_step: int = Field(default=1, description="System step the category belongs to")


class LessonCategory(LessonCategoryBase, table=True):
    """Table: lesson_category"""

    __tablename__ = "lesson_category"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"LessonCategory(id={self.id}, category_type={self.category_type})"


class LessonBase(Base):
    """Base fields for lessons."""

    lesson_category_id: str = Field(index=True, description="Owning category")
    lesson_order: int = Field(default=0, description="Position inside the category")
    system_step: int = Field(default=1)


class Lesson(LessonBase, table=True):
    """Table: lessons"""

    __tablename__ = "lessons"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)

    def __repr__(self) -> str:
        return f"Lesson(id={self.id}, category={self.lesson_category_id}, order={self.lesson_order})"


class LessonQuestionGroupBase(Base):
    """Base fields for question groups."""

    lesson_id: str = Field(index=True, description="Owning lesson")
    category_id: Optional[str] = Field(default=None, description="Category the questions count towards")
    question_list: List[str] = Field(default_factory=list, sa_type=JSON, description="Ordered question IDs")
    time: int = Field(default=0, description="Time limit for the group in seconds")
    system_step: int = Field(default=1)


class LessonQuestionGroup(LessonQuestionGroupBase, table=True):
    """Table: lesson_question_groups"""

    __tablename__ = "lesson_question_groups"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class QuestionBase(Base):
    """Base fields for questions."""

    question: str = Field(description="Question text")
    content: Optional[str] = Field(default=None, description="Reading passage or context")
    format: Optional[str] = Field(default=None, description="Rendering format")
    options: Optional[Any] = Field(default=None, sa_type=JSON, description="Answer options")
    topic_type: Optional[str] = Field(default=None)
    explanation: Optional[str] = Field(default=None)
    manager_id: Optional[str] = Field(default=None, description="Content manager who authored the question")


class Question(QuestionBase, table=True):
    """Table: questions"""

    __tablename__ = "questions"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)


class OnlineLessonBase(Base):
    """Base fields for online lessons."""

    title: str = Field(description="Lesson title")
    description: Optional[str] = Field(default=None)
    link: Optional[str] = Field(default=None, description="Video or meeting URL")
    category_id: Optional[str] = Field(default=None, index=True)
    order: int = Field(default=0)
    system_step: int = Field(default=1)


class OnlineLesson(OnlineLessonBase, table=True):
    """Table: online_lessons"""

    __tablename__ = "online_lessons"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=utc_now_naive, sa_type=NaiveDateTime)
