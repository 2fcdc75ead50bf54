from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from ..utils import new_object_id
from . import Base


def ObjectId(*args, **kwargs) -> Column:
    """24-character hex identifier column."""
    return Column(String(24), *args, **kwargs)


class TimestampMixin:
    """Mixin providing created/updated timestamps."""

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class TeamScopedMixin:
    """Columns shared by every entity that belongs to a team."""

    org_id = ObjectId(nullable=False)
    team_id = ObjectId(nullable=False, index=True)


class Org(TimestampMixin, Base):
    __tablename__ = "orgs"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    owner_id = ObjectId(nullable=False)
    plan = Column(String(50), nullable=False, default="FREE")


class Team(TimestampMixin, Base):
    __tablename__ = "teams"
    __table_args__ = (Index("ix_team_org_id", "org_id"),)

    id = ObjectId(primary_key=True, default=new_object_id)
    org_id = ObjectId(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    owner_id = ObjectId(nullable=False)
    # Default model slots, set independently
    llm_model_id = ObjectId(ForeignKey("models.id", ondelete="SET NULL"))
    embedding_model_id = ObjectId(ForeignKey("models.id", ondelete="SET NULL"))


class Account(TimestampMixin, Base):
    __tablename__ = "accounts"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    email = Column(String(320), unique=True, nullable=False)
    password_hash = Column(String(255))
    email_verified = Column(Boolean, nullable=False, default=False)
    verify_token = Column(String(64))
    current_org_id = ObjectId()
    current_team_id = ObjectId()
    role = Column(String(100))  # Onboarding persona, e.g. "developer"
    onboarded = Column(Boolean, nullable=False, default=False)


class TeamMember(TimestampMixin, Base):
    __tablename__ = "team_members"
    __table_args__ = (
        Index("ix_team_member_account_team", "account_id", "team_id", unique=True),
    )

    id = ObjectId(primary_key=True, default=new_object_id)
    team_id = ObjectId(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    account_id = ObjectId(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    role = Column(String(50), nullable=False, default="TEAM_MEMBER")
    permissions = Column(BigInteger, nullable=False, default=0)


class Model(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "models"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    config = Column(JSON)
    embedding_length = Column(Integer)


class Agent(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "agents"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    role = Column(Text)
    goal = Column(Text)
    backstory = Column(Text)
    model_id = ObjectId()
    function_model_id = ObjectId()
    tool_ids = Column(JSON, nullable=False, default=list)
    allow_delegation = Column(Boolean, nullable=False, default=False)
    verbose = Column(Integer, nullable=False, default=0)
    icon = Column(JSON)


class Task(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_task_team_name", "team_id", "name"),)

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    expected_output = Column(Text)
    agent_id = ObjectId()
    tool_ids = Column(JSON, nullable=False, default=list)
    context = Column(JSON, nullable=False, default=list)  # Ids of tasks whose output feeds this one
    async_execution = Column(Boolean, nullable=False, default=False)
    requires_human_input = Column(Boolean, nullable=False, default=False)
    display_only_final_output = Column(Boolean, nullable=False, default=False)
    store_task_output = Column(Boolean, nullable=False, default=False)
    task_output_file_name = Column(String(255))
    is_structured_output = Column(Boolean)
    form_fields = Column(JSON)
    icon = Column(JSON)


class Tool(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "tools"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(50), nullable=False, default="function")
    data = Column(JSON)
    datasource_id = ObjectId()
    state = Column(String(50), nullable=False, default="pending")


class ToolRevision(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "tool_revisions"

    id = ObjectId(primary_key=True, default=new_object_id)
    tool_id = ObjectId(ForeignKey("tools.id", ondelete="CASCADE"), nullable=False)
    content = Column(JSON)


class App(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "apps"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    type = Column(String(20), nullable=False, default="chat")
    agent_ids = Column(JSON, nullable=False, default=list)
    task_ids = Column(JSON, nullable=False, default=list)
    process = Column(String(20), default="sequential")
    manager_model_id = ObjectId()
    sharing_mode = Column(String(20), nullable=False, default="team")
    tags = Column(JSON)
    icon = Column(JSON)


class Datasource(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "datasources"

    id = ObjectId(primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    source_type = Column(String(100))
    source_id = Column(String(64))
    connection_id = Column(String(64), index=True)
    destination_id = Column(String(64))
    workspace_id = Column(String(64))
    status = Column(String(20), nullable=False, default="draft")
    stream_config = Column(JSON)
    schedule = Column(JSON)
    embedding_field = Column(String(255))
    model_id = ObjectId()
    filename = Column(String(500))
    record_count = Column(JSON)
    last_synced_at = Column(DateTime)


class ChatSession(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "sessions"

    id = ObjectId(primary_key=True, default=new_object_id)
    app_id = ObjectId()
    name = Column(String(255))
    status = Column(String(20), nullable=False, default="started")
    started_by = ObjectId()


class SessionMessage(TimestampMixin, Base):
    __tablename__ = "session_messages"

    id = ObjectId(primary_key=True, default=new_object_id)
    session_id = ObjectId(
        ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(String(50))
    message = Column(JSON)


class Asset(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "assets"

    id = ObjectId(primary_key=True, default=new_object_id)
    filename = Column(String(500), nullable=False)
    original_filename = Column(String(500))
    mimetype = Column(String(255))
    size = Column(Integer)
    linked_to_id = ObjectId()
    linked_collection = Column(String(50))


class Notification(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "notifications"

    id = ObjectId(primary_key=True, default=new_object_id)
    type = Column(String(50))
    title = Column(String(255))
    description = Column(Text)
    seen = Column(Boolean, nullable=False, default=False)


class ShareLink(TeamScopedMixin, TimestampMixin, Base):
    __tablename__ = "share_links"

    id = ObjectId(primary_key=True, default=new_object_id)
    token = Column(String(64), unique=True, nullable=False)
    type = Column(String(20), nullable=False, default="app")
    payload = Column(JSON)
    expires_at = Column(DateTime)
