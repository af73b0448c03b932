"""initial schema: auth, audit, students, programme content, chat, notifications, settings

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:12:41.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create every table the site needs."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    # Auth / RBAC
    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("full_name", sa.String(255), nullable=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(64), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(128), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )
    if "role_permissions" not in existing_tables:
        op.create_table(
            "role_permissions",
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("permission_id", sa.Integer(), sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
        )
    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(64), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("details", sa.JSON(), nullable=True),
            sa.Column("ip_address", sa.String(64), nullable=True),
        )
        op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])
        op.create_index("ix_audit_events_action", "audit_events", ["action"])

    # Students and progress
    if "students" not in existing_tables:
        op.create_table(
            "students",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("full_name", sa.String(100), nullable=False),
            sa.Column("phone", sa.String(16), nullable=False),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("goal", sa.Text(), nullable=False),
            sa.Column("income", sa.String(16), nullable=False),
            sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
            *_timestamps(),
        )
        op.create_index("idx_students_email", "students", ["email"])
        op.create_index("idx_students_status", "students", ["status"])
        op.create_index("idx_students_created", "students", ["created_at"])
    if "student_progress" not in existing_tables:
        op.create_table(
            "student_progress",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
            sa.Column("module_name", sa.String(128), nullable=False),
            sa.Column("progress_percent", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_student_progress_student", "student_progress", ["student_id"])

    if "volunteers" not in existing_tables:
        op.create_table(
            "volunteers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("full_name", sa.String(100), nullable=False),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("phone", sa.String(16), nullable=False),
            sa.Column("skills", sa.JSON(), nullable=True),
            sa.Column("availability", sa.String(32), nullable=True),
            sa.Column("motivation", sa.Text(), nullable=True),
            sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
            *_timestamps(),
        )
        op.create_index("idx_volunteers_status", "volunteers", ["status"])
        op.create_index("idx_volunteers_created", "volunteers", ["created_at"])

    # Site content
    if "blog_posts" not in existing_tables:
        op.create_table(
            "blog_posts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("slug", sa.String(255), nullable=False, unique=True),
            sa.Column("excerpt", sa.Text(), nullable=True),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("featured_image", sa.String(1024), nullable=True),
            sa.Column("author_name", sa.String(128), nullable=False, server_default="Arc Hope Team"),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_blog_posts_published", "blog_posts", ["published_at"])
    if "sponsors" not in existing_tables:
        op.create_table(
            "sponsors",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("logo_url", sa.String(1024), nullable=True),
            sa.Column("website_url", sa.String(1024), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("tier", sa.String(16), nullable=True, server_default="bronze"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )
    if "testimonials" not in existing_tables:
        op.create_table(
            "testimonials",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("student_name", sa.String(128), nullable=False),
            sa.Column("student_story", sa.Text(), nullable=False),
            sa.Column("old_job", sa.String(255), nullable=True),
            sa.Column("new_job", sa.String(255), nullable=True),
            sa.Column("old_salary", sa.String(64), nullable=True),
            sa.Column("new_salary", sa.String(64), nullable=True),
            sa.Column("avatar_url", sa.String(1024), nullable=True),
            sa.Column("year_graduated", sa.Integer(), nullable=True),
            sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )
    if "newsletter_subscribers" not in existing_tables:
        op.create_table(
            "newsletter_subscribers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(255), nullable=False, unique=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("subscribed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("unsubscribed_at", sa.DateTime(), nullable=True),
        )

    # Chat transcripts
    if "chat_conversations" not in existing_tables:
        op.create_table(
            "chat_conversations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("session_id", sa.String(64), nullable=False, unique=True),
            sa.Column("student_name", sa.String(128), nullable=True),
            sa.Column("student_email", sa.String(255), nullable=True),
            sa.Column("classification", sa.String(32), nullable=True),
            sa.Column("recommended_courses", sa.JSON(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_chat_conversations_classification", "chat_conversations", ["classification"])
        op.create_index("idx_chat_conversations_updated", "chat_conversations", ["updated_at"])
    if "chat_messages" not in existing_tables:
        op.create_table(
            "chat_messages",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "conversation_id",
                sa.Integer(),
                sa.ForeignKey("chat_conversations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("role", sa.String(16), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_chat_messages_conversation", "chat_messages", ["conversation_id"])

    if "email_notifications" not in existing_tables:
        op.create_table(
            "email_notifications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="SET NULL"), nullable=True),
            sa.Column("email_type", sa.String(32), nullable=False),
            sa.Column("recipient_email", sa.String(320), nullable=False),
            sa.Column("subject", sa.String(255), nullable=False),
            sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("provider_message_id", sa.String(128), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("sent_at", sa.DateTime(), nullable=True),
        )
        op.create_index("idx_email_notifications_student", "email_notifications", ["student_id"])
        op.create_index("idx_email_notifications_created", "email_notifications", ["created_at"])

    if "site_settings" not in existing_tables:
        op.create_table(
            "site_settings",
            sa.Column("key", sa.String(64), primary_key=True),
            sa.Column("value", sa.Text(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        )


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        "site_settings",
        "email_notifications",
        "chat_messages",
        "chat_conversations",
        "newsletter_subscribers",
        "testimonials",
        "sponsors",
        "blog_posts",
        "volunteers",
        "student_progress",
        "students",
        "audit_events",
        "role_permissions",
        "user_roles",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
