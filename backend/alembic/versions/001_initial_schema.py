"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

Creates the StudyNest schema:
- Extensions: uuid-ossp
- Tables: users, auth_identities, files, tasks, user_settings, friendships,
  study_groups, study_group_members, group_messages, study_sessions,
  quizzes, ai_chats, ai_chat_messages, scheduled_jobs
- Indexes on every owner/group access path
- Triggers: updated_at auto-update function and triggers
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False
    )


def _user_fk(column: str = "user_id") -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint([column], ["users.id"], ondelete="CASCADE")


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ==========================================================================
    # USERS / AUTH
    # ==========================================================================
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "auth_identities",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_user_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        _created_at(),
        sa.Column("last_login_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        _user_fk(),
        sa.UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
    )
    op.create_index("ix_auth_identities_user_id", "auth_identities", ["user_id"])

    # ==========================================================================
    # FILES
    # ==========================================================================
    # parent_folder_id has no foreign key: ownership is checked on write and
    # deleting a folder leaves its children in place
    op.create_table(
        "files",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("type", sa.String(255), nullable=False),
        sa.Column("parent_folder_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_folder", sa.Boolean(), server_default=sa.text("FALSE"), nullable=False),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("storage_id", sa.String(1024), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        _user_fk(),
        sa.CheckConstraint("NOT is_folder OR storage_id IS NULL", name="folder_has_no_blob"),
    )
    op.create_index("idx_files_user_parent", "files", ["user_id", "parent_folder_id"])

    # ==========================================================================
    # TASKS
    # ==========================================================================
    op.create_table(
        "tasks",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("start_time", sa.BigInteger(), nullable=False),
        sa.Column("end_time", sa.BigInteger(), nullable=False),
        sa.Column("reminder_time", sa.BigInteger(), nullable=True),
        sa.Column("completed", sa.Boolean(), server_default=sa.text("FALSE"), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        _user_fk(),
    )
    op.create_index("idx_tasks_user_end_time", "tasks", ["user_id", "end_time"])

    # ==========================================================================
    # USER_SETTINGS
    # ==========================================================================
    op.create_table(
        "user_settings",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("serial_number", sa.String(16), nullable=False),
        sa.Column("theme", sa.String(10), server_default="system", nullable=False),
        sa.Column("study_mode", sa.String(10), server_default="normal", nullable=False),
        sa.Column("focus_mode", sa.Boolean(), server_default=sa.text("FALSE"), nullable=False),
        sa.Column("notifications", sa.Boolean(), server_default=sa.text("TRUE"), nullable=False),
        sa.Column("study_preferences", postgresql.JSONB(), nullable=False),
        sa.Column("ai_memory", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("total_study_time", sa.BigInteger(), server_default=sa.text("0"), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("user_id"),
        _user_fk(),
        sa.CheckConstraint("theme IN ('light', 'dark', 'system')", name="valid_theme"),
        sa.CheckConstraint("study_mode IN ('normal', 'pomodoro')", name="valid_study_mode"),
        sa.CheckConstraint("total_study_time >= 0", name="valid_total_study_time"),
    )
    op.create_index("ix_user_settings_serial_number", "user_settings", ["serial_number"], unique=True)

    # ==========================================================================
    # FRIENDSHIPS
    # ==========================================================================
    op.create_table(
        "friendships",
        _id(),
        sa.Column("user_id_1", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id_2", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(10), server_default="pending", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        _user_fk("user_id_1"),
        _user_fk("user_id_2"),
        sa.CheckConstraint("status IN ('pending', 'accepted')", name="valid_friendship_status"),
        sa.CheckConstraint("user_id_1 <> user_id_2", name="no_self_friendship"),
    )
    op.create_index("ix_friendships_user_id_1", "friendships", ["user_id_1"])
    op.create_index("ix_friendships_user_id_2", "friendships", ["user_id_2"])

    # ==========================================================================
    # STUDY GROUPS
    # ==========================================================================
    op.create_table(
        "study_groups",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("creator_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("points", postgresql.JSONB(), nullable=False),
        sa.Column("last_active", sa.BigInteger(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        _user_fk("creator_id"),
    )
    op.create_index("ix_study_groups_creator_id", "study_groups", ["creator_id"])

    op.create_table(
        "study_group_members",
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("joined_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("group_id", "user_id"),
        sa.ForeignKeyConstraint(["group_id"], ["study_groups.id"], ondelete="CASCADE"),
        _user_fk(),
    )
    op.create_index("idx_study_group_members_user", "study_group_members", ["user_id"])

    op.create_table(
        "group_messages",
        _id(),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("file_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["group_id"], ["study_groups.id"], ondelete="CASCADE"),
        _user_fk(),
        sa.CheckConstraint("type IN ('text', 'file', 'link', 'image')", name="valid_message_type"),
    )
    op.create_index("idx_group_messages_group_time", "group_messages", ["group_id", "timestamp"])

    op.create_table(
        "study_sessions",
        _id(),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scheduled_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("start_time", sa.BigInteger(), nullable=False),
        sa.Column("end_time", sa.BigInteger(), nullable=False),
        sa.Column("attendees", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["group_id"], ["study_groups.id"], ondelete="CASCADE"),
        _user_fk("scheduled_by"),
    )
    op.create_index("ix_study_sessions_group_id", "study_sessions", ["group_id"])

    op.create_table(
        "quizzes",
        _id(),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("questions", postgresql.JSONB(), nullable=False),
        sa.Column("participants", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("file_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["group_id"], ["study_groups.id"], ondelete="CASCADE"),
        _user_fk("created_by"),
    )
    op.create_index("ix_quizzes_group_id", "quizzes", ["group_id"])

    # ==========================================================================
    # AI CHAT
    # ==========================================================================
    op.create_table(
        "ai_chats",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("last_active", sa.BigInteger(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        _user_fk(),
    )
    op.create_index("idx_ai_chats_user_last_active", "ai_chats", ["user_id", "last_active"])

    op.create_table(
        "ai_chat_messages",
        _id(),
        sa.Column("chat_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["chat_id"], ["ai_chats.id"], ondelete="CASCADE"),
        sa.CheckConstraint("role IN ('user', 'assistant')", name="valid_chat_role"),
    )
    op.create_index("idx_ai_chat_messages_chat_position", "ai_chat_messages", ["chat_id", "position"])

    # ==========================================================================
    # SCHEDULED_JOBS
    # ==========================================================================
    op.create_table(
        "scheduled_jobs",
        _id(),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payload", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("run_at", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(20), server_default="queued", nullable=False),
        sa.Column("attempts", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("claimed_at", sa.BigInteger(), nullable=True),
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('queued', 'running', 'completed', 'failed')", name="valid_job_status"
        ),
    )
    op.create_index("idx_scheduled_jobs_status_run_at", "scheduled_jobs", ["status", "run_at"])
    op.create_index("idx_scheduled_jobs_kind_subject", "scheduled_jobs", ["kind", "subject_id"])

    # ==========================================================================
    # UPDATED_AT TRIGGER FUNCTION
    # ==========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    for table in ["users", "files", "tasks", "user_settings"]:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    for table in ["users", "files", "tasks", "user_settings"]:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")

    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    # Drop tables in reverse dependency order
    op.drop_table("scheduled_jobs")
    op.drop_table("ai_chat_messages")
    op.drop_table("ai_chats")
    op.drop_table("quizzes")
    op.drop_table("study_sessions")
    op.drop_table("group_messages")
    op.drop_table("study_group_members")
    op.drop_table("study_groups")
    op.drop_table("friendships")
    op.drop_table("user_settings")
    op.drop_table("tasks")
    op.drop_table("files")
    op.drop_table("auth_identities")
    op.drop_table("users")
