"""SQLAlchemy declarative models for reputation and guild state."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


# ── Players ──────────────────────────────────────────────


class PlayerModel(Base):
    """Player directory row: level and last login."""

    __tablename__ = "players"

    player_id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    level: Mapped[int] = mapped_column(Integer, default=1)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


# ── Factions / reputation ────────────────────────────────


class FactionModel(Base):
    __tablename__ = "factions"

    faction_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    faction_type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class FactionRelationshipModel(Base):
    """Directed faction edge used for propagation."""

    __tablename__ = "faction_relationships"

    faction_id: Mapped[str] = mapped_column(
        String, ForeignKey("factions.faction_id", ondelete="CASCADE"), primary_key=True
    )
    target_faction_id: Mapped[str] = mapped_column(
        String, ForeignKey("factions.faction_id", ondelete="CASCADE"), primary_key=True
    )
    kind: Mapped[str] = mapped_column(String, nullable=False)
    strength: Mapped[float] = mapped_column(Float, default=1.0)


class PlayerReputationModel(Base):
    """Ledger row per (player, faction). Never deleted."""

    __tablename__ = "faction_player_reputation"

    player_id: Mapped[str] = mapped_column(String, primary_key=True)
    faction_id: Mapped[str] = mapped_column(
        String, ForeignKey("factions.faction_id"), primary_key=True
    )
    value: Mapped[float] = mapped_column(Float, default=0.0)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_reputation_updated", "last_updated_at"),)


class ReputationHistoryModel(Base):
    """Append-only history, trimmed to the newest N rows per player."""

    __tablename__ = "faction_reputation_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String, nullable=False)
    faction_id: Mapped[str] = mapped_column(String, nullable=False)
    action_code: Mapped[str] = mapped_column(String, nullable=False)
    delta: Mapped[float] = mapped_column(Float, nullable=False)
    reason: Mapped[str] = mapped_column(Text, default="")
    context: Mapped[dict] = mapped_column(JSON, default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_reputation_history_player", "player_id", "timestamp"),)


class ReputationConsequenceModel(Base):
    """Audit log of executed consequences."""

    __tablename__ = "reputation_consequences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String, nullable=False)
    faction_id: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    old_tier: Mapped[str] = mapped_column(String, nullable=False)
    new_tier: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, default="")
    executed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_consequence_player", "player_id"),)


# ── Guilds ───────────────────────────────────────────────


class GuildModel(Base):
    """Guild row. Disbanded guilds stay with is_active=False."""

    __tablename__ = "guilds"

    guild_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    tag: Mapped[str] = mapped_column(String(5), unique=True, nullable=False)
    founder_id: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    founded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    config: Mapped[dict] = mapped_column(JSON, nullable=False)
    resources: Mapped[dict] = mapped_column(JSON, nullable=False)
    stats: Mapped[dict] = mapped_column(JSON, nullable=False)
    territories: Mapped[list] = mapped_column(JSON, default=list)
    allies: Mapped[list] = mapped_column(JSON, default=list)
    enemies: Mapped[list] = mapped_column(JSON, default=list)
    neutral: Mapped[list] = mapped_column(JSON, default=list)
    active_perks: Mapped[list] = mapped_column(JSON, default=list)
    unlocked_perks: Mapped[list] = mapped_column(JSON, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    disbanded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (Index("idx_guild_active", "is_active"),)


class GuildRoleModel(Base):
    __tablename__ = "guild_roles"

    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    permissions: Mapped[list] = mapped_column(JSON, default=list)
    max_members: Mapped[int] = mapped_column(Integer, default=-1)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)


class GuildMemberModel(Base):
    """Membership row. player_id is the key: one guild per player."""

    __tablename__ = "guild_members"

    player_id: Mapped[str] = mapped_column(String, primary_key=True)
    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[str] = mapped_column(String, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    contribution_points: Mapped[int] = mapped_column(Integer, default=0)
    last_active: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (Index("idx_member_guild", "guild_id"),)


class GuildApplicationModel(Base):
    __tablename__ = "guild_applications"

    application_id: Mapped[str] = mapped_column(String, primary_key=True)
    player_id: Mapped[str] = mapped_column(String, nullable=False)
    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    applied_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_application_guild_status", "guild_id", "status"),
        Index("idx_application_player_status", "player_id", "status"),
    )


class GuildEventModel(Base):
    """Guild event log."""

    __tablename__ = "guild_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    target_id: Mapped[str | None] = mapped_column(String, nullable=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_guild_event_guild", "guild_id", "created_at"),)


class GuildRelationModel(Base):
    """One row per direction; diplomacy writes both."""

    __tablename__ = "guild_relations"

    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), primary_key=True
    )
    target_guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), primary_key=True
    )
    relation: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class GuildPerkModel(Base):
    __tablename__ = "guild_perks"

    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), primary_key=True
    )
    perk_id: Mapped[str] = mapped_column(String, primary_key=True)
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    activated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    activated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class GuildResourceTransactionModel(Base):
    """Treasury ledger. Positive amount is a deposit, negative a withdrawal."""

    __tablename__ = "guild_resource_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[str] = mapped_column(
        String, ForeignKey("guilds.guild_id", ondelete="CASCADE"), nullable=False
    )
    player_id: Mapped[str | None] = mapped_column(String, nullable=True)
    resource_type: Mapped[str] = mapped_column(String, nullable=False)
    sub_type: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("idx_guild_tx_guild", "guild_id", "created_at"),)
