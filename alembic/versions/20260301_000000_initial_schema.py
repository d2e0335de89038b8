"""Initial schema for Smarti

Revision ID: 20260301_000000
Revises: None
Create Date: 2026-03-01 00:00:00.000000

Creates every table of the Smarti backend:
- Learners (users, user settings, per step stats)
- Learning content (categories, lessons, question groups, questions, online lessons)
- Learning results (lesson results, wrong questions)
- Billing (plans, products, coupons, subscriptions, payment transactions, book purchases)
- Organizations (organizations and their school years)
- Client app (system config, feedbacks, app rating logs, push tokens)

and seeds one system configuration row per system step.

Revision format: YYYYMMDD_HHMMSS_description

"""

import uuid
from datetime import datetime
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20260301_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SYSTEM_STEPS = (1, 2, 3)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(64), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(), nullable=False)


def upgrade() -> None:
    """Create all tables and seed the system configuration."""

    # Learners
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("image_src", sa.String(), nullable=True),
        sa.Column("system_step", sa.Integer(), nullable=True),
        sa.Column("organization_year_id", sa.String(), nullable=True),
        sa.Column("managed_organization", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "user_settings",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        sa.Column("lesson_category_id", sa.String(), nullable=True),
        sa.Column("lesson_clock", sa.Boolean(), nullable=False),
        sa.Column("quiz_clock", sa.Boolean(), nullable=False),
        sa.Column("immediate_result", sa.Boolean(), nullable=False),
        sa.Column("grade_class", sa.String(), nullable=True),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("avatar", sa.String(), nullable=True),
        sa.Column("saved_coupon_id", sa.String(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_user_settings_user_id", "user_id"),
    )

    op.create_table(
        "user_system_stats",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        sa.Column("experience", sa.Integer(), nullable=False),
        sa.Column("genius_score", sa.Integer(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_user_system_stats_user_id", "user_id"),
    )

    # Learning content
    op.create_table(
        "lesson_category",
        _id(),
        sa.Column("category_type", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("image_src", sa.String(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "lessons",
        _id(),
        sa.Column("lesson_category_id", sa.String(), nullable=False),
        sa.Column("lesson_order", sa.Integer(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_lessons_lesson_category_id", "lesson_category_id"),
    )

    op.create_table(
        "lesson_question_groups",
        _id(),
        sa.Column("lesson_id", sa.String(), nullable=False),
        sa.Column("category_id", sa.String(), nullable=True),
        sa.Column("question_list", sa.JSON(), nullable=True),
        sa.Column("time", sa.Integer(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_lesson_question_groups_lesson_id", "lesson_id"),
    )

    op.create_table(
        "questions",
        _id(),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("format", sa.String(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("topic_type", sa.String(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("manager_id", sa.String(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "online_lessons",
        _id(),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("link", sa.String(), nullable=True),
        sa.Column("category_id", sa.String(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_online_lessons_category_id", "category_id"),
    )

    # Learning results
    op.create_table(
        "user_lesson_results",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("lesson_id", sa.String(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=True),
        sa.Column("right_questions", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_user_lesson_results_user_id", "user_id"),
        sa.Index("ix_user_lesson_results_lesson_id", "lesson_id"),
    )

    op.create_table(
        "user_wrong_questions",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("question_id", sa.String(), nullable=False),
        sa.Column("lesson_category_id", sa.String(), nullable=True),
        sa.Column("is_null", sa.Boolean(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_user_wrong_questions_user_id", "user_id"),
        sa.Index("ix_user_wrong_questions_question_id", "question_id"),
        sa.Index("ix_user_wrong_questions_lesson_category_id", "lesson_category_id"),
    )

    # Billing
    op.create_table(
        "plans",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("internal_description", sa.String(), nullable=True),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        sa.Column("package_type", sa.String(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("display_data", sa.JSON(), nullable=True),
        sa.Column("products_ids", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "products",
        _id(),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("product_type", sa.String(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "coupons",
        _id(),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.DateTime(), nullable=False),
        sa.Column("valid_until", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=False),
        sa.Column("uses", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.String(), nullable=False),
        sa.Column("organization_year_id", sa.String(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_coupons_code", "code"),
        sa.Index("ix_coupons_organization_year_id", "organization_year_id"),
    )

    op.create_table(
        "subscriptions",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("coupon_id", sa.String(), nullable=True),
        sa.Column("payment_transaction_id", sa.String(), nullable=True),
        sa.Column("system_until", sa.DateTime(), nullable=True),
        sa.Column("system_step", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_subscriptions_user_id", "user_id"),
        sa.Index("ix_subscriptions_payment_transaction_id", "payment_transaction_id"),
    )

    op.create_table(
        "payment_transactions",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("plan_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("total_price", sa.Integer(), nullable=False),
        sa.Column("vat_id", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("student_name", sa.String(), nullable=True),
        sa.Column("coupon_id", sa.String(), nullable=True),
        sa.Column("book_included", sa.Boolean(), nullable=False),
        sa.Column("system_step", sa.Integer(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_payment_transactions_user_id", "user_id"),
        sa.Index("ix_payment_transactions_created_at", "created_at"),
    )

    op.create_table(
        "book_purchases",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("payment_transaction_id", sa.String(), nullable=True),
        sa.Column("student_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("filename", sa.String(), nullable=True),
        sa.Column("gcs_bucket", sa.String(), nullable=True),
        sa.Column("generated", sa.Boolean(), nullable=False),
        sa.Column("vat_id", sa.String(), nullable=True),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_book_purchases_user_id", "user_id"),
        sa.Index("ix_book_purchases_product_id", "product_id"),
    )

    # Organizations
    op.create_table(
        "organization_info",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "organization_years",
        _id(),
        sa.Column("organization_id", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_organization_years_organization_id", "organization_id"),
    )

    # Client app
    system_config = op.create_table(
        "system_config",
        _id(),
        sa.Column("system_step", sa.Integer(), nullable=False),
        sa.Column("link_whatsapp_group", sa.String(), nullable=True),
        sa.Column("exam_date", sa.DateTime(), nullable=True),
        sa.Column("num_question", sa.Integer(), nullable=True),
        sa.Column("ios_version", sa.String(), nullable=True),
        sa.Column("android_version", sa.String(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_system_config_system_step", "system_step"),
    )

    op.create_table(
        "feedbacks",
        _id(),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("screen_name", sa.String(), nullable=True),
        sa.Column("identify_number", sa.String(), nullable=True),
        sa.Column("rate", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_feedbacks_user_id", "user_id"),
    )

    op.create_table(
        "app_rating_logs",
        _id(),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("device_id", sa.String(), nullable=True),
        sa.Column("device_type", sa.String(), nullable=True),
        sa.Column("device_model", sa.String(), nullable=True),
        sa.Column("app_version", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "push_notification_tokens",
        _id(),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("device_id", sa.String(), nullable=False),
        sa.Column("device_type", sa.String(), nullable=False),
        sa.Column("device_name", sa.String(), nullable=True),
        sa.Column("device_model", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_push_notification_tokens_user_id", "user_id"),
        sa.Index("ix_push_notification_tokens_token", "token", unique=True),
    )

    # Null store versions keep the mobile apps in test mode until a release is published
    now = datetime.utcnow()
    op.bulk_insert(
        system_config,
        [
            {
                "id": str(uuid.uuid4()),
                "system_step": step,
                "link_whatsapp_group": None,
                "exam_date": None,
                "num_question": None,
                "ios_version": None,
                "android_version": None,
                "created_at": now,
                "updated_at": now,
            }
            for step in SYSTEM_STEPS
        ],
    )


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "push_notification_tokens",
        "app_rating_logs",
        "feedbacks",
        "system_config",
        "organization_years",
        "organization_info",
        "book_purchases",
        "payment_transactions",
        "subscriptions",
        "coupons",
        "products",
        "plans",
        "user_wrong_questions",
        "user_lesson_results",
        "online_lessons",
        "questions",
        "lesson_question_groups",
        "lessons",
        "lesson_category",
        "user_system_stats",
        "user_settings",
        "users",
    ):
        op.drop_table(table)
