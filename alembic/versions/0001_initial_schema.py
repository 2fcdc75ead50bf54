"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _id(name="id", **kwargs):
    return sa.Column(name, sa.String(24), **kwargs)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _team_scoped():
    return [_id("org_id", nullable=False), _id("team_id", nullable=False)]


def upgrade() -> None:
    """Create the org, team, account and resource tables."""
    op.create_table(
        "orgs",
        _id(primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        _id("owner_id", nullable=False),
        sa.Column("plan", sa.String(50), nullable=False, server_default="FREE"),
        *_timestamps(),
    )

    op.create_table(
        "models",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("model", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("config", sa.JSON()),
        sa.Column("embedding_length", sa.Integer()),
        *_timestamps(),
    )

    op.create_table(
        "teams",
        _id(primary_key=True),
        _id("org_id", sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _id("owner_id", nullable=False),
        _id("llm_model_id", sa.ForeignKey("models.id", ondelete="SET NULL")),
        _id("embedding_model_id", sa.ForeignKey("models.id", ondelete="SET NULL")),
        *_timestamps(),
    )
    op.create_index("ix_team_org_id", "teams", ["org_id"])

    op.create_table(
        "accounts",
        _id(primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255)),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verify_token", sa.String(64)),
        _id("current_org_id"),
        _id("current_team_id"),
        sa.Column("role", sa.String(100)),
        sa.Column("onboarded", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "team_members",
        _id(primary_key=True),
        _id("team_id", sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        _id("account_id", sa.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="TEAM_MEMBER"),
        sa.Column("permissions", sa.BigInteger(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index(
        "ix_team_member_account_team", "team_members", ["account_id", "team_id"], unique=True
    )

    op.create_table(
        "agents",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.Text()),
        sa.Column("goal", sa.Text()),
        sa.Column("backstory", sa.Text()),
        _id("model_id"),
        _id("function_model_id"),
        sa.Column("tool_ids", sa.JSON(), nullable=False),
        sa.Column("allow_delegation", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verbose", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("icon", sa.JSON()),
        *_timestamps(),
    )

    op.create_table(
        "tasks",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("expected_output", sa.Text()),
        _id("agent_id"),
        sa.Column("tool_ids", sa.JSON(), nullable=False),
        sa.Column("context", sa.JSON(), nullable=False),
        sa.Column("async_execution", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("requires_human_input", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "display_only_final_output", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("store_task_output", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("task_output_file_name", sa.String(255)),
        sa.Column("is_structured_output", sa.Boolean()),
        sa.Column("form_fields", sa.JSON()),
        sa.Column("icon", sa.JSON()),
        *_timestamps(),
    )
    op.create_index("ix_task_team_name", "tasks", ["team_id", "name"])

    op.create_table(
        "tools",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("type", sa.String(50), nullable=False, server_default="function"),
        sa.Column("data", sa.JSON()),
        _id("datasource_id"),
        sa.Column("state", sa.String(50), nullable=False, server_default="pending"),
        *_timestamps(),
    )

    op.create_table(
        "tool_revisions",
        _id(primary_key=True),
        *_team_scoped(),
        _id("tool_id", sa.ForeignKey("tools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.JSON()),
        *_timestamps(),
    )

    op.create_table(
        "apps",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("type", sa.String(20), nullable=False, server_default="chat"),
        sa.Column("agent_ids", sa.JSON(), nullable=False),
        sa.Column("task_ids", sa.JSON(), nullable=False),
        sa.Column("process", sa.String(20)),
        _id("manager_model_id"),
        sa.Column("sharing_mode", sa.String(20), nullable=False, server_default="team"),
        sa.Column("tags", sa.JSON()),
        sa.Column("icon", sa.JSON()),
        *_timestamps(),
    )

    op.create_table(
        "datasources",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("source_type", sa.String(100)),
        sa.Column("source_id", sa.String(64)),
        sa.Column("connection_id", sa.String(64)),
        sa.Column("destination_id", sa.String(64)),
        sa.Column("workspace_id", sa.String(64)),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("stream_config", sa.JSON()),
        sa.Column("schedule", sa.JSON()),
        sa.Column("embedding_field", sa.String(255)),
        _id("model_id"),
        sa.Column("filename", sa.String(500)),
        sa.Column("record_count", sa.JSON()),
        sa.Column("last_synced_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_datasources_connection_id", "datasources", ["connection_id"])

    op.create_table(
        "sessions",
        _id(primary_key=True),
        *_team_scoped(),
        _id("app_id"),
        sa.Column("name", sa.String(255)),
        sa.Column("status", sa.String(20), nullable=False, server_default="started"),
        _id("started_by"),
        *_timestamps(),
    )

    op.create_table(
        "session_messages",
        _id(primary_key=True),
        _id("session_id", sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(50)),
        sa.Column("message", sa.JSON()),
        *_timestamps(),
    )
    op.create_index("ix_session_messages_session_id", "session_messages", ["session_id"])

    op.create_table(
        "assets",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("filename", sa.String(500), nullable=False),
        sa.Column("original_filename", sa.String(500)),
        sa.Column("mimetype", sa.String(255)),
        sa.Column("size", sa.Integer()),
        _id("linked_to_id"),
        sa.Column("linked_collection", sa.String(50)),
        *_timestamps(),
    )

    op.create_table(
        "notifications",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("type", sa.String(50)),
        sa.Column("title", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("seen", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "share_links",
        _id(primary_key=True),
        *_team_scoped(),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("type", sa.String(20), nullable=False, server_default="app"),
        sa.Column("payload", sa.JSON()),
        sa.Column("expires_at", sa.DateTime()),
        *_timestamps(),
    )

    # Team lookups on every team-scoped table
    for table in (
        "models",
        "agents",
        "tasks",
        "tools",
        "tool_revisions",
        "apps",
        "datasources",
        "sessions",
        "assets",
        "notifications",
        "share_links",
    ):
        op.create_index(f"ix_{table}_team_id", table, ["team_id"])


def downgrade() -> None:
    """Drop every table."""
    for table in (
        "share_links",
        "notifications",
        "assets",
        "session_messages",
        "sessions",
        "datasources",
        "apps",
        "tool_revisions",
        "tools",
        "tasks",
        "agents",
        "team_members",
        "accounts",
        "teams",
        "models",
        "orgs",
    ):
        op.drop_table(table)
