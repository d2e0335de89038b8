"""Shared fixtures for unit tests.

Every test gets a fresh in-memory SQLite database with all Smarti tables
created, plus small factories for the rows most tests need.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.pool import StaticPool

import smarti.core.database.entities  # noqa: F401  registers every table
from smarti.core.database.entities import (
    Coupon,
    Lesson,
    LessonCategory,
    LessonQuestionGroup,
    OrganizationInfo,
    OrganizationYear,
    Plan,
    Product,
    Question,
    User,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def in_memory_engine():
    """Create an in-memory SQLite engine with every table created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(in_memory_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    async_session = sessionmaker(bind=in_memory_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:  # type: ignore[attr-defined]
        yield session


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 10, 15, 12, 0, 0)


async def _add(session: AsyncSession, *rows):
    """Persist ``rows`` and return the first one."""
    session.add_all(rows)
    await session.commit()
    for row in rows:
        await session.refresh(row)
    return rows[0]


@pytest_asyncio.fixture
async def user(session: AsyncSession) -> User:
    return await _add(session, User(id="user-1", name="Noa", email="noa@example.com", system_step=1))


@pytest_asyncio.fixture
async def system_product(session: AsyncSession) -> Product:
    return await _add(session, Product(id="product-system1", name="System 1", product_type="system1", system_step=1))


@pytest_asyncio.fixture
async def book_product(session: AsyncSession) -> Product:
    return await _add(session, Product(id="product-book1", name="Book 1", product_type="book1", system_step=1))


@pytest_asyncio.fixture
async def plan(session: AsyncSession, system_product: Product, book_product: Product) -> Plan:
    return await _add(
        session,
        Plan(
            id="plan-1",
            name="Yearly",
            internal_description="Yearly subscription",
            days=365,
            price=300,
            system_step=1,
            package_type="system",
            display_data={
                "addBookOption": {"price": "₪120", "productId": book_product.id},
                "productBookId": book_product.id,
            },
            products_ids=[system_product.id],
        ),
    )


@pytest.fixture
def make_coupon(session: AsyncSession, now: datetime):
    """Factory persisting a coupon that is valid around ``now`` unless overridden."""

    async def _make(**overrides) -> Coupon:
        values = dict(
            code="SMART10",
            type="percentage",
            value=10,
            valid_from=now - timedelta(days=10),
            valid_until=now + timedelta(days=10),
            is_active=True,
            max_uses=5,
            uses=0,
            plan_id="plan-1",
            organization_year_id="org-year-1",
            system_step=1,
        )
        values.update(overrides)
        return await _add(session, Coupon(**values))

    return _make


@pytest_asyncio.fixture
async def organization(session: AsyncSession) -> OrganizationInfo:
    return await _add(session, OrganizationInfo(id="org-1", name="Gifted School"))


@pytest_asyncio.fixture
async def organization_year(session: AsyncSession, organization: OrganizationInfo) -> OrganizationYear:
    return await _add(session, OrganizationYear(id="org-year-1", organization_id=organization.id, year=2025))


@pytest_asyncio.fixture
async def lesson_content(session: AsyncSession):
    """A category with one lesson holding a group of three questions."""
    category = LessonCategory(id="cat-1", category_type="Verbal", order=1, system_step=1)
    lesson = Lesson(id="lesson-1", lesson_category_id=category.id, lesson_order=1, system_step=1)
    questions = [
        Question(id=f"q-{index}", question=f"Question {index}", options={"a": "right", "b": "wrong"})
        for index in range(1, 4)
    ]
    group = LessonQuestionGroup(
        id="group-1",
        lesson_id=lesson.id,
        category_id=category.id,
        question_list=[question.id for question in questions],
        time=120,
        system_step=1,
    )
    await _add(session, category, lesson, group, *questions)
    return {"category": category, "lesson": lesson, "group": group, "questions": questions}


@pytest.fixture
def persist(session: AsyncSession):
    """Persist rows in the test session; returns the first row."""

    async def _persist(*rows):
        return await _add(session, *rows)

    return _persist


@pytest.fixture
def live_window() -> dict:
    """Coupon validity window around the wall clock, for code paths that read the current time."""
    today = datetime.utcnow()
    return {"valid_from": today - timedelta(days=1), "valid_until": today + timedelta(days=1)}
