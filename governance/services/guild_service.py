"""Guild Governance Service - membership, hierarchy, treasury, diplomacy.

Every mutation follows the same shape: validate against the cached entity,
apply the change to a deep copy, write the copy inside one transaction, and
swap it into the registry only after commit. A failure at any step leaves
both the store and the registry untouched.
"""

import copy
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from governance.config import settings
from governance.core.clock import utcnow
from governance.core.errors import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from governance.core.event_bus import EventBus, GameEvent
from governance.core.event_types import EventTypes
from governance.core.guild import (
    FOUNDER,
    ApplicationStatus,
    DiplomaticRelation,
    Guild,
    GuildApplication,
    GuildConfig,
    GuildMember,
    GuildPerk,
    GuildResources,
    GuildRole,
    GuildStats,
    GuildType,
    LevelUpResult,
    Permission,
    ResourceType,
    normalize_tag,
    validate_name_and_tag,
)
from governance.core.logging import get_logger
from governance.db.database import transaction
from governance.db.models import (
    GuildApplicationModel,
    GuildEventModel,
    GuildMemberModel,
    GuildModel,
    GuildPerkModel,
    GuildRelationModel,
    GuildResourceTransactionModel,
    GuildRoleModel,
)
from governance.services.guild_registry import GuildRegistry
from governance.services.notifications import Notifier
from governance.services.player_directory import PlayerDirectory

logger = get_logger(__name__)

SOURCE = "guild_service"

LEADERBOARD_CATEGORIES = ("level", "members", "resources", "territories", "experience")


class GuildService:
    """Multi-step guild operations against the registry and the store."""

    def __init__(
        self,
        db_session: Session,
        event_bus: EventBus,
        registry: Optional[GuildRegistry] = None,
        players: Optional[PlayerDirectory] = None,
        notifier: Optional[Notifier] = None,
        creation_min_level: Optional[int] = None,
        default_max_members: Optional[int] = None,
        inactivity_days: Optional[int] = None,
        officer_withdraw_limit: Optional[int] = None,
    ) -> None:
        self._db = db_session
        self._bus = event_bus
        self._registry = registry if registry is not None else GuildRegistry()
        self._players = players or PlayerDirectory(db_session)
        self._notifier = notifier or Notifier(event_bus)
        self._creation_min_level = (
            creation_min_level
            if creation_min_level is not None
            else settings.GUILD_CREATION_MIN_LEVEL
        )
        self._default_max_members = (
            default_max_members or settings.GUILD_DEFAULT_MAX_MEMBERS
        )
        self._inactivity = timedelta(
            days=inactivity_days
            if inactivity_days is not None
            else settings.GUILD_INACTIVITY_DAYS
        )
        self._officer_withdraw_limit = (
            officer_withdraw_limit
            if officer_withdraw_limit is not None
            else settings.OFFICER_WITHDRAW_LIMIT
        )

    @property
    def registry(self) -> GuildRegistry:
        return self._registry

    @property
    def default_max_members(self) -> int:
        return self._default_max_members

    # ── Loading ──────────────────────────────────────────────

    def load(self) -> int:
        """Populate the registry with every active guild in the store."""
        rows = self._db.query(GuildModel).filter(GuildModel.is_active.is_(True)).all()
        return self._registry.load(self._guild_from_row(row) for row in rows)

    def _guild_from_row(self, row: GuildModel) -> Guild:
        roles = (
            self._db.query(GuildRoleModel)
            .filter(GuildRoleModel.guild_id == row.guild_id)
            .all()
        )
        members = (
            self._db.query(GuildMemberModel)
            .filter(GuildMemberModel.guild_id == row.guild_id)
            .all()
        )
        return Guild(
            guild_id=row.guild_id,
            name=row.name,
            tag=row.tag,
            founder_id=row.founder_id,
            founded_at=row.founded_at,
            description=row.description or "",
            config=GuildConfig.from_dict(row.config),
            resources=GuildResources.from_dict(row.resources),
            stats=GuildStats.from_dict(row.stats),
            territories=set(row.territories or []),
            allies=set(row.allies or []),
            enemies=set(row.enemies or []),
            neutral=set(row.neutral or []),
            active_perks=set(row.active_perks or []),
            unlocked_perks=set(row.unlocked_perks or []),
            roles={
                r.role_id: GuildRole(
                    role_id=r.role_id,
                    name=r.name,
                    priority=r.priority,
                    permissions=frozenset(r.permissions or []),
                    max_members=r.max_members,
                    is_default=r.is_default,
                )
                for r in roles
            },
            members={
                m.player_id: GuildMember(
                    player_id=m.player_id,
                    guild_id=m.guild_id,
                    role_id=m.role_id,
                    joined_at=m.joined_at,
                    contribution_points=m.contribution_points,
                    last_active=m.last_active,
                    is_active=m.is_active,
                )
                for m in members
            },
            is_active=row.is_active,
            disbanded_at=row.disbanded_at,
        )

    # ── Lookups ──────────────────────────────────────────────

    def get_guild(self, guild_id: str) -> Guild:
        guild = self._registry.get(guild_id)
        if guild is not None:
            return guild
        row = self._db.get(GuildModel, guild_id)
        if row is None or not row.is_active:
            raise NotFoundError(f"Guild not found: {guild_id}")
        guild = self._guild_from_row(row)
        self._registry.put(guild)
        return guild

    def get_player_guild(self, player_id: str) -> Optional[Guild]:
        guild = self._registry.guild_of(player_id)
        if guild is not None:
            return guild
        row = self._db.get(GuildMemberModel, player_id)
        if row is None:
            return None
        return self.get_guild(row.guild_id)

    def _require_player_guild(self, player_id: str) -> Guild:
        guild = self.get_player_guild(player_id)
        if guild is None:
            raise NotFoundError(f"Player {player_id} is not in a guild")
        return guild

    def _require_permission(self, guild: Guild, player_id: str, permission: str) -> None:
        if not guild.has_permission(player_id, permission):
            raise PermissionDeniedError(f"{player_id} lacks permission {permission}")

    def search_guilds(
        self,
        name: Optional[str] = None,
        tag: Optional[str] = None,
        guild_type: Optional[GuildType] = None,
        recruitment_open: Optional[bool] = None,
        min_level: Optional[int] = None,
        max_level: Optional[int] = None,
        limit: int = 20,
    ) -> List[Guild]:
        """Active guilds matching every given filter, highest level first."""
        needle = name.lower() if name else None
        wanted_tag = normalize_tag(tag) if tag else None
        results = []
        for guild in self._registry.active_guilds():
            if needle and needle not in guild.name.lower():
                continue
            if wanted_tag and guild.tag != wanted_tag:
                continue
            if guild_type is not None and guild.config.guild_type != GuildType(guild_type):
                continue
            if recruitment_open is not None and guild.config.recruitment_open != recruitment_open:
                continue
            if min_level is not None and guild.level < min_level:
                continue
            if max_level is not None and guild.level > max_level:
                continue
            results.append(guild)
        results.sort(key=lambda g: (-g.level, g.name))
        return results[: max(0, limit)]

    # ── Creation ─────────────────────────────────────────────

    def create_guild(
        self,
        founder_id: str,
        name: str,
        tag: str,
        config: Optional[GuildConfig] = None,
        description: str = "",
        now: Optional[datetime] = None,
    ) -> Guild:
        """Insert the guild, its six default roles and the founder membership atomically."""
        name, tag = validate_name_and_tag(name, tag)
        config = config or GuildConfig(max_members=self._default_max_members)
        if config.max_members < 1:
            raise ValidationError("max_members must be at least 1")
        if config.minimum_level < 1:
            raise ValidationError("minimum_level must be at least 1")

        level = self._players.get_level(founder_id)
        if level < self._creation_min_level:
            raise PermissionDeniedError(
                f"Guild creation requires level {self._creation_min_level}"
            )
        if self.get_player_guild(founder_id) is not None:
            raise ConflictError(f"Player {founder_id} is already in a guild")
        self._check_unique(name, tag)

        now = now or utcnow()
        guild = Guild.found(
            guild_id=str(uuid.uuid4()),
            name=name,
            tag=tag,
            founder_id=founder_id,
            config=config,
            description=description,
            now=now,
        )

        with transaction(self._db):
            self._save(guild, now)
            self._log_event(
                guild.guild_id,
                EventTypes.GUILD_CREATED,
                founder_id,
                None,
                {"name": name, "tag": tag},
                now,
            )
        self._registry.put(guild)

        self._emit(
            EventTypes.GUILD_CREATED,
            {"guild_id": guild.guild_id, "founder_id": founder_id, "name": name, "tag": tag},
        )
        logger.info(f"Guild created: {name} [{tag}] by {founder_id} ({guild.guild_id})")
        return guild

    def _check_unique(self, name: str, tag: str) -> None:
        clash = (
            self._db.query(GuildModel)
            .filter((func.lower(GuildModel.name) == name.lower()) | (GuildModel.tag == tag))
            .first()
        )
        if clash is None:
            return
        if clash.tag == tag:
            raise ConflictError(f"Guild tag already taken: {tag}")
        raise ConflictError(f"Guild name already taken: {name}")

    # ── Applications ─────────────────────────────────────────

    def apply_to_guild(
        self,
        player_id: str,
        guild_id: str,
        message: str = "",
        now: Optional[datetime] = None,
    ) -> GuildApplication:
        """Create a pending application, or join at once when the guild does not require one."""
        if self.get_player_guild(player_id) is not None:
            raise ConflictError(f"Player {player_id} is already in a guild")
        guild = self.get_guild(guild_id)
        if not guild.config.recruitment_open:
            raise PermissionDeniedError(f"{guild.name} is not recruiting")
        if guild.is_full:
            raise CapacityExceededError(f"{guild.name} is full")
        if self._players.get_level(player_id) < guild.config.minimum_level:
            raise PermissionDeniedError(
                f"{guild.name} requires level {guild.config.minimum_level}"
            )
        pending = (
            self._db.query(GuildApplicationModel)
            .filter(
                GuildApplicationModel.player_id == player_id,
                GuildApplicationModel.guild_id == guild_id,
                GuildApplicationModel.status == ApplicationStatus.PENDING.value,
            )
            .first()
        )
        if pending is not None:
            raise ConflictError("An application to this guild is already pending")

        now = now or utcnow()
        application = GuildApplication(
            application_id=str(uuid.uuid4()),
            player_id=player_id,
            guild_id=guild_id,
            message=message,
            applied_at=now,
        )

        if not guild.config.requires_application:
            working = copy.deepcopy(guild)
            working.add_member(player_id, now=now)
            application.status = ApplicationStatus.ACCEPTED
            application.processed_at = now
            with transaction(self._db):
                self._save(working, now)
                self._db.add(self._application_row(application))
                self._log_event(
                    guild_id,
                    EventTypes.MEMBER_JOINED,
                    player_id,
                    None,
                    {"auto_accepted": True},
                    now,
                )
            self._registry.put(working)
            self._emit(EventTypes.MEMBER_JOINED, {"guild_id": guild_id, "player_id": player_id})
            logger.info(f"Player {player_id} joined {guild.name} (auto-accepted)")
            return application

        with transaction(self._db):
            self._db.add(self._application_row(application))
            self._log_event(
                guild_id,
                EventTypes.APPLICATION_SUBMITTED,
                player_id,
                None,
                {"application_id": application.application_id},
                now,
            )
        self._emit(
            EventTypes.APPLICATION_SUBMITTED,
            {
                "guild_id": guild_id,
                "player_id": player_id,
                "application_id": application.application_id,
            },
        )
        logger.info(f"Application submitted: {player_id} -> {guild.name}")
        return application

    def process_application(
        self,
        application_id: str,
        decision: ApplicationStatus,
        processor_id: str,
        now: Optional[datetime] = None,
    ) -> GuildApplication:
        """Accept or reject a pending application.

        Acceptance adds the member in the same commit as the status update.
        """
        decision = ApplicationStatus(decision)
        if decision == ApplicationStatus.PENDING:
            raise ValidationError("Decision must be accepted or rejected")

        row = self._db.get(GuildApplicationModel, application_id)
        if row is None:
            raise NotFoundError(f"Application not found: {application_id}")
        if row.status != ApplicationStatus.PENDING.value:
            raise StateError("Application has already been processed")
        guild = self.get_guild(row.guild_id)
        self._require_permission(guild, processor_id, Permission.MEMBERS_INVITE)

        now = now or utcnow()
        working = None
        if decision == ApplicationStatus.ACCEPTED:
            if self.get_player_guild(row.player_id) is not None:
                raise ConflictError(f"Player {row.player_id} is already in a guild")
            working = copy.deepcopy(guild)
            working.add_member(row.player_id, now=now)

        with transaction(self._db):
            row.status = decision.value
            row.processed_by = processor_id
            row.processed_at = now
            if working is not None:
                self._save(working, now)
                self._log_event(
                    guild.guild_id,
                    EventTypes.MEMBER_JOINED,
                    row.player_id,
                    None,
                    {"application_id": application_id},
                    now,
                )
            self._log_event(
                guild.guild_id,
                EventTypes.APPLICATION_PROCESSED,
                processor_id,
                row.player_id,
                {"application_id": application_id, "decision": decision.value},
                now,
            )
        if working is not None:
            self._registry.put(working)

        application = self._application_from_row(row)
        self._emit(
            EventTypes.APPLICATION_PROCESSED,
            {"guild_id": guild.guild_id, "player_id": row.player_id, "decision": decision.value},
        )
        if working is not None:
            self._emit(
                EventTypes.MEMBER_JOINED,
                {"guild_id": guild.guild_id, "player_id": row.player_id},
            )
        self._notifier.send(
            row.player_id,
            f"Your application to {guild.name} was {decision.value}",
            "guild.application",
        )
        logger.info(f"Application {application_id} {decision.value} by {processor_id}")
        return application

    def list_applications(
        self,
        guild_id: str,
        status: Optional[ApplicationStatus] = ApplicationStatus.PENDING,
    ) -> List[GuildApplication]:
        query = self._db.query(GuildApplicationModel).filter(
            GuildApplicationModel.guild_id == guild_id
        )
        if status is not None:
            query = query.filter(GuildApplicationModel.status == ApplicationStatus(status).value)
        rows = query.order_by(GuildApplicationModel.applied_at).all()
        return [self._application_from_row(r) for r in rows]

    # ── Membership ───────────────────────────────────────────

    def leave_guild(self, player_id: str, now: Optional[datetime] = None) -> None:
        guild = self._require_player_guild(player_id)
        if guild.is_founder(player_id):
            raise StateError("The founder must transfer leadership or disband the guild")

        now = now or utcnow()
        working = copy.deepcopy(guild)
        working.remove_member(player_id)
        with transaction(self._db):
            self._save(working, now)
            self._log_event(guild.guild_id, EventTypes.MEMBER_LEFT, player_id, None, {}, now)
        self._registry.put(working)

        self._emit(EventTypes.MEMBER_LEFT, {"guild_id": guild.guild_id, "player_id": player_id})
        logger.info(f"Player {player_id} left {guild.name}")

    def kick_member(
        self,
        kicker_id: str,
        target_id: str,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> None:
        """Remove a member. Non-founders need members.kick and a strictly higher role."""
        guild = self._require_player_guild(kicker_id)
        if not guild.is_member(target_id):
            raise NotFoundError(f"Player {target_id} is not a member of {guild.name}")
        if kicker_id == target_id:
            raise ValidationError("Use leave to exit a guild")
        if guild.is_founder(target_id):
            raise StateError("The founder cannot be kicked")
        if not guild.is_founder(kicker_id):
            self._require_permission(guild, kicker_id, Permission.MEMBERS_KICK)
            if not guild.role_of(kicker_id).outranks(guild.role_of(target_id)):
                raise PermissionDeniedError("Cannot kick a member of equal or higher rank")

        now = now or utcnow()
        working = copy.deepcopy(guild)
        working.remove_member(target_id)
        with transaction(self._db):
            self._save(working, now)
            self._log_event(
                guild.guild_id,
                EventTypes.MEMBER_KICKED,
                kicker_id,
                target_id,
                {"reason": reason},
                now,
            )
        self._registry.put(working)

        self._emit(
            EventTypes.MEMBER_KICKED,
            {"guild_id": guild.guild_id, "player_id": target_id, "kicked_by": kicker_id},
        )
        message = f"You have been removed from {guild.name}"
        if reason:
            message = f"{message}: {reason}"
        self._notifier.send(target_id, message, "guild.kick")
        logger.info(f"Player {target_id} kicked from {guild.name} by {kicker_id}")

    def change_member_role(
        self,
        changer_id: str,
        target_id: str,
        new_role_id: str,
        now: Optional[datetime] = None,
    ) -> GuildMember:
        """Promote or demote. Assigning 'founder' is a leadership transfer."""
        guild = self._require_player_guild(changer_id)
        if not guild.is_member(target_id):
            raise NotFoundError(f"Player {target_id} is not a member of {guild.name}")
        new_role = guild.get_role(new_role_id)

        if new_role.role_id == FOUNDER:
            self.transfer_foundership(guild.guild_id, changer_id, target_id, now=now)
            return self.get_guild(guild.guild_id).get_member(target_id)

        if not guild.is_founder(changer_id):
            if not (
                guild.has_permission(changer_id, Permission.MEMBERS_PROMOTE)
                or guild.has_permission(changer_id, Permission.MEMBERS_DEMOTE)
            ):
                raise PermissionDeniedError(f"{changer_id} cannot change member roles")
            changer_role = guild.role_of(changer_id)
            if not changer_role.outranks(guild.role_of(target_id)):
                raise PermissionDeniedError("Cannot change the role of an equal or higher rank")
            if not changer_role.outranks(new_role):
                raise PermissionDeniedError("Cannot assign a role equal to or above your own")

        now = now or utcnow()
        working = copy.deepcopy(guild)
        old_role_id, _ = working.change_member_role(target_id, new_role.role_id)
        with transaction(self._db):
            self._save(working, now)
            self._log_event(
                guild.guild_id,
                EventTypes.ROLE_CHANGED,
                changer_id,
                target_id,
                {"old_role": old_role_id, "new_role": new_role.role_id},
                now,
            )
        self._registry.put(working)

        self._emit(
            EventTypes.ROLE_CHANGED,
            {
                "guild_id": guild.guild_id,
                "player_id": target_id,
                "old_role": old_role_id,
                "new_role": new_role.role_id,
            },
        )
        logger.info(
            f"Role changed in {guild.name}: {target_id} {old_role_id} -> {new_role.role_id}"
        )
        return working.get_member(target_id)

    def transfer_foundership(
        self,
        guild_id: str,
        current_founder_id: str,
        new_founder_id: str,
        now: Optional[datetime] = None,
    ) -> Guild:
        guild = self.get_guild(guild_id)
        if not guild.is_founder(current_founder_id):
            raise PermissionDeniedError("Only the founder can transfer foundership")

        now = now or utcnow()
        working = copy.deepcopy(guild)
        working.transfer_founder(new_founder_id)
        with transaction(self._db):
            self._save(working, now)
            self._log_event(
                guild_id,
                EventTypes.LEADERSHIP_TRANSFERRED,
                current_founder_id,
                new_founder_id,
                {},
                now,
            )
        self._registry.put(working)

        self._emit(
            EventTypes.LEADERSHIP_TRANSFERRED,
            {
                "guild_id": guild_id,
                "old_founder_id": current_founder_id,
                "new_founder_id": new_founder_id,
            },
        )
        self._notifier.send(
            new_founder_id, f"You are now the founder of {guild.name}", "guild.leadership"
        )
        logger.info(
            f"Foundership of {guild.name} transferred: "
            f"{current_founder_id} -> {new_founder_id}"
        )
        return working

    def disband_guild(
        self,
        player_id: str,
        confirmation_code: str,
        now: Optional[datetime] = None,
    ) -> Guild:
        """Soft-disband: the guild row stays with is_active=False, memberships are removed."""
        guild = self._require_player_guild(player_id)
        if not guild.is_founder(player_id):
            raise PermissionDeniedError("Only the founder can disband the guild")
        if confirmation_code != f"DISBAND_{guild.tag}":
            raise StateError("Confirmation code does not match")

        now = now or utcnow()
        roster = sorted(guild.members)
        working = copy.deepcopy(guild)
        working.members.clear()
        working.stats.total_members = 0
        working.stats.active_members = 0
        working.is_active = False
        working.disbanded_at = now

        related = []
        for other in self._registry.active_guilds():
            if other.guild_id == guild.guild_id:
                continue
            if other.get_diplomatic_relation(guild.guild_id) != DiplomaticRelation.UNKNOWN:
                other_copy = copy.deepcopy(other)
                other_copy.set_diplomatic_relation(guild.guild_id, DiplomaticRelation.UNKNOWN)
                related.append(other_copy)

        with transaction(self._db):
            self._save(working, now)
            for other_copy in related:
                self._save(other_copy, now)
            self._db.query(GuildRelationModel).filter(
                (GuildRelationModel.guild_id == guild.guild_id)
                | (GuildRelationModel.target_guild_id == guild.guild_id)
            ).delete(synchronize_session=False)
            self._db.query(GuildApplicationModel).filter(
                GuildApplicationModel.guild_id == guild.guild_id,
                GuildApplicationModel.status == ApplicationStatus.PENDING.value,
            ).update(
                {
                    GuildApplicationModel.status: ApplicationStatus.REJECTED.value,
                    GuildApplicationModel.processed_by: player_id,
                    GuildApplicationModel.processed_at: now,
                },
                synchronize_session=False,
            )
            self._log_event(
                guild.guild_id,
                EventTypes.GUILD_DISBANDED,
                player_id,
                None,
                {"members": roster},
                now,
            )

        self._registry.evict(guild.guild_id)
        for other_copy in related:
            self._registry.put(other_copy)

        self._emit(EventTypes.GUILD_DISBANDED, {"guild_id": guild.guild_id, "members": roster})
        logger.info(
            f"Guild disbanded: {guild.name} [{guild.tag}] ({len(roster)} members released)"
        )
        return working

    # ── Treasury ─────────────────────────────────────────────

    def deposit_resources(
        self,
        player_id: str,
        resource_type: ResourceType,
        amount: int,
        ore_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Deposit into the treasury; awards contribution points and guild experience."""
        guild = self._require_player_guild(player_id)
        self._require_permission(guild, player_id, Permission.RESOURCES_DEPOSIT)
        resource_type = ResourceType(resource_type)

        now = now or utcnow()
        working = copy.deepcopy(guild)
        balance = working.deposit(resource_type, amount, ore_type)
        reward = Guild.deposit_reward(resource_type, amount)
        points = working.award_contribution(player_id, reward)
        working.mark_member_active(player_id, now)
        level_up = working.award_experience(reward)

        with transaction(self._db):
            self._save(working, now)
            self._record_transaction(
                working.guild_id, player_id, resource_type, ore_type, amount, balance, now
            )
            self._log_event(
                guild.guild_id,
                EventTypes.RESOURCES_DEPOSITED,
                player_id,
                None,
                {"resource_type": resource_type.value, "ore_type": ore_type, "amount": amount},
                now,
            )
            if level_up.leveled_up:
                self._log_event(
                    guild.guild_id,
                    EventTypes.GUILD_LEVEL_UP,
                    None,
                    None,
                    {"new_level": level_up.new_level},
                    now,
                )
        self._registry.put(working)

        self._emit(
            EventTypes.RESOURCES_DEPOSITED,
            {
                "guild_id": guild.guild_id,
                "player_id": player_id,
                "resource_type": resource_type.value,
                "amount": amount,
            },
        )
        self._announce_level_up(working, level_up)
        logger.info(
            f"Deposit to {guild.name}: {amount} {ore_type or resource_type.value} by {player_id} "
            f"(balance={balance}, contribution=+{reward})"
        )
        return {
            "balance": balance,
            "contribution_awarded": reward,
            "contribution_points": points,
            "experience_awarded": level_up.experience_awarded,
            "level_up": level_up.leveled_up,
            "guild_level": working.level,
            "resources": working.resources.to_dict(),
        }

    def withdraw_resources(
        self,
        player_id: str,
        resource_type: ResourceType,
        amount: int,
        ore_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Withdraw from the treasury. Never partial; a failure leaves balances unchanged."""
        guild = self._require_player_guild(player_id)
        resource_type = ResourceType(resource_type)
        if not guild.has_permission(player_id, Permission.RESOURCES_WITHDRAW):
            if not guild.has_permission(player_id, Permission.RESOURCES_WITHDRAW_LIMITED):
                raise PermissionDeniedError(f"{player_id} cannot withdraw resources")
            if isinstance(amount, int) and amount > self._officer_withdraw_limit:
                raise PermissionDeniedError(
                    f"Withdrawal limit is {self._officer_withdraw_limit} per request"
                )

        now = now or utcnow()
        working = copy.deepcopy(guild)
        balance = working.withdraw(resource_type, amount, ore_type)

        with transaction(self._db):
            self._save(working, now)
            self._record_transaction(
                working.guild_id, player_id, resource_type, ore_type, -amount, balance, now
            )
            self._log_event(
                guild.guild_id,
                EventTypes.RESOURCES_WITHDRAWN,
                player_id,
                None,
                {"resource_type": resource_type.value, "ore_type": ore_type, "amount": amount},
                now,
            )
        self._registry.put(working)

        self._emit(
            EventTypes.RESOURCES_WITHDRAWN,
            {
                "guild_id": guild.guild_id,
                "player_id": player_id,
                "resource_type": resource_type.value,
                "amount": amount,
            },
        )
        logger.info(
            f"Withdrawal from {guild.name}: {amount} {ore_type or resource_type.value} "
            f"by {player_id} (balance={balance})"
        )
        return {"balance": balance, "resources": working.resources.to_dict()}

    # ── Perks ────────────────────────────────────────────────

    def get_available_perks(self, guild_id: str) -> List[GuildPerk]:
        return self.get_guild(guild_id).available_perks()

    def activate_perk(
        self, player_id: str, perk_id: str, now: Optional[datetime] = None
    ) -> GuildPerk:
        """Deduct the perk cost and record the activation in one commit."""
        guild = self._require_player_guild(player_id)
        self._require_permission(guild, player_id, Permission.PERKS_MANAGE)

        now = now or utcnow()
        working = copy.deepcopy(guild)
        perk = working.activate_perk(perk_id)
        with transaction(self._db):
            self._save(working, now)
            self._db.add(
                GuildPerkModel(
                    guild_id=guild.guild_id,
                    perk_id=perk.perk_id,
                    cost=perk.cost,
                    activated_by=player_id,
                    activated_at=now,
                )
            )
            self._record_transaction(
                guild.guild_id,
                player_id,
                ResourceType.CREDITS,
                None,
                -perk.cost,
                working.resources.credits,
                now,
            )
            self._log_event(
                guild.guild_id,
                EventTypes.PERK_ACTIVATED,
                player_id,
                None,
                {"perk_id": perk.perk_id, "cost": perk.cost},
                now,
            )
        self._registry.put(working)

        self._emit(
            EventTypes.PERK_ACTIVATED, {"guild_id": guild.guild_id, "perk_id": perk.perk_id}
        )
        logger.info(f"Perk activated in {guild.name}: {perk.perk_id} (-{perk.cost} credits)")
        return perk

    # ── Diplomacy ────────────────────────────────────────────

    def set_guild_relation(
        self,
        initiator_id: str,
        target_guild_id: str,
        relation: DiplomaticRelation,
        now: Optional[datetime] = None,
    ) -> DiplomaticRelation:
        """Write the relation into both guilds. UNKNOWN clears it."""
        guild = self._require_player_guild(initiator_id)
        self._require_permission(guild, initiator_id, Permission.DIPLOMACY_MANAGE)
        target = self.get_guild(target_guild_id)
        if guild.guild_id == target.guild_id:
            raise ValidationError("Cannot set diplomatic relations with own guild")
        relation = DiplomaticRelation(relation)

        now = now or utcnow()
        working = copy.deepcopy(guild)
        working_target = copy.deepcopy(target)
        working.set_diplomatic_relation(target.guild_id, relation)
        working_target.set_diplomatic_relation(guild.guild_id, relation)

        with transaction(self._db):
            self._save(working, now)
            self._save(working_target, now)
            pairs = (
                (guild.guild_id, target.guild_id),
                (target.guild_id, guild.guild_id),
            )
            for source_id, target_id in pairs:
                row = self._db.get(GuildRelationModel, (source_id, target_id))
                if relation == DiplomaticRelation.UNKNOWN:
                    if row is not None:
                        self._db.delete(row)
                    continue
                if row is None:
                    row = GuildRelationModel(guild_id=source_id, target_guild_id=target_id)
                    self._db.add(row)
                row.relation = relation.value
                row.updated_at = now
            for guild_id in (guild.guild_id, target.guild_id):
                self._log_event(
                    guild_id,
                    EventTypes.RELATION_CHANGED,
                    initiator_id,
                    None,
                    {
                        "guild_a": guild.guild_id,
                        "guild_b": target.guild_id,
                        "relation": relation.value,
                    },
                    now,
                )
        self._registry.put(working)
        self._registry.put(working_target)

        self._emit(
            EventTypes.RELATION_CHANGED,
            {
                "guild_id": guild.guild_id,
                "target_guild_id": target.guild_id,
                "relation": relation.value,
            },
        )
        logger.info(f"Guild relation: {guild.name} <-> {target.name} = {relation.value}")
        return relation

    # ── Read queries ─────────────────────────────────────────

    def get_member_bonuses(self, player_id: str) -> Dict[str, float]:
        guild = self.get_player_guild(player_id)
        if guild is None:
            return {}
        return guild.member_bonuses(player_id)

    def get_guild_leaderboard(
        self, category: str = "level", limit: int = 10
    ) -> List[Dict[str, Any]]:
        if category not in LEADERBOARD_CATEGORIES:
            raise ValidationError(f"Unknown leaderboard category: {category}")
        sort_keys = {
            "level": lambda g: (g.level, g.stats.total_experience),
            "members": lambda g: g.member_count,
            "resources": lambda g: g.resources.credits,
            "territories": lambda g: len(g.territories),
            "experience": lambda g: g.stats.total_experience,
        }
        ranked = sorted(
            self._registry.active_guilds(),
            key=lambda g: (sort_keys[category](g), g.name),
            reverse=True,
        )
        board = []
        for rank, guild in enumerate(ranked[: max(0, limit)], start=1):
            entry = guild.summary()
            entry["rank"] = rank
            board.append(entry)
        return board

    def get_guild_events(
        self, guild_id: str, limit: int = 50, offset: int = 0
    ) -> List[Dict[str, Any]]:
        """Event log, newest first. Works for disbanded guilds too."""
        if self._db.get(GuildModel, guild_id) is None:
            raise NotFoundError(f"Guild not found: {guild_id}")
        rows = (
            self._db.query(GuildEventModel)
            .filter(GuildEventModel.guild_id == guild_id)
            .order_by(GuildEventModel.created_at.desc(), GuildEventModel.id.desc())
            .offset(max(0, offset))
            .limit(max(0, limit))
            .all()
        )
        return [
            {
                "event_type": r.event_type,
                "actor_id": r.actor_id,
                "target_id": r.target_id,
                "data": dict(r.data or {}),
                "created_at": r.created_at,
            }
            for r in rows
        ]

    def get_guild_stats(self) -> Dict[str, Any]:
        guilds = self._registry.active_guilds()
        by_type: Dict[str, int] = {}
        for guild in guilds:
            key = guild.config.guild_type.value
            by_type[key] = by_type.get(key, 0) + 1
        total_members = self._db.query(GuildMemberModel).count()
        average = round(sum(g.member_count for g in guilds) / len(guilds)) if guilds else 0
        return {
            "total_guilds": len(guilds),
            "total_members": total_members,
            "average_guild_size": average,
            "guilds_by_type": by_type,
        }

    # ── Maintenance ──────────────────────────────────────────

    def process_periodic_updates(self, now: Optional[datetime] = None) -> int:
        """Refresh member activity from last-login times. Returns members newly marked inactive."""
        now = now or utcnow()
        cutoff = now - self._inactivity
        marked = 0
        for guild in self._registry.active_guilds():
            working = copy.deepcopy(guild)
            changed = 0
            for player_id, member in working.members.items():
                last_login = self._players.get_last_login(player_id)
                if last_login is None:
                    continue
                if last_login < cutoff and member.is_active:
                    working.mark_member_inactive(player_id)
                    member.last_active = last_login
                    changed += 1
                    marked += 1
                elif last_login >= cutoff and not member.is_active:
                    working.mark_member_active(player_id, last_login)
                    changed += 1
            if not changed:
                continue
            with transaction(self._db):
                self._save(working, now)
            self._registry.put(working)
        logger.info(f"Guild maintenance: {marked} members marked inactive")
        return marked

    # ── Internal ─────────────────────────────────────────────

    def _save(self, guild: Guild, now: datetime) -> None:
        """Write the entity, its roles and its roster. Runs inside a transaction."""
        row = self._db.get(GuildModel, guild.guild_id)
        if row is None:
            row = GuildModel(guild_id=guild.guild_id, founded_at=guild.founded_at)
            self._db.add(row)
        row.name = guild.name
        row.tag = guild.tag
        row.founder_id = guild.founder_id
        row.description = guild.description
        row.config = guild.config.to_dict()
        row.resources = guild.resources.to_dict()
        row.stats = guild.stats.to_dict()
        row.territories = sorted(guild.territories)
        row.allies = sorted(guild.allies)
        row.enemies = sorted(guild.enemies)
        row.neutral = sorted(guild.neutral)
        row.active_perks = sorted(guild.active_perks)
        row.unlocked_perks = sorted(guild.unlocked_perks)
        row.is_active = guild.is_active
        row.disbanded_at = guild.disbanded_at
        row.updated_at = now
        self._db.flush()

        role_rows = {
            r.role_id: r
            for r in self._db.query(GuildRoleModel).filter(
                GuildRoleModel.guild_id == guild.guild_id
            )
        }
        for role in guild.roles.values():
            role_row = role_rows.get(role.role_id)
            if role_row is None:
                role_row = GuildRoleModel(guild_id=guild.guild_id, role_id=role.role_id)
                self._db.add(role_row)
            role_row.name = role.name
            role_row.priority = role.priority
            role_row.permissions = sorted(role.permissions)
            role_row.max_members = role.max_members
            role_row.is_default = role.is_default

        member_rows = {
            m.player_id: m
            for m in self._db.query(GuildMemberModel).filter(
                GuildMemberModel.guild_id == guild.guild_id
            )
        }
        for player_id, member_row in member_rows.items():
            if player_id not in guild.members:
                self._db.delete(member_row)
        for member in guild.members.values():
            member_row = member_rows.get(member.player_id)
            if member_row is None:
                member_row = GuildMemberModel(player_id=member.player_id, guild_id=guild.guild_id)
                self._db.add(member_row)
            member_row.role_id = member.role_id
            member_row.joined_at = member.joined_at
            member_row.contribution_points = member.contribution_points
            member_row.last_active = member.last_active
            member_row.is_active = member.is_active
        self._db.flush()

    def _log_event(
        self,
        guild_id: str,
        event_type: str,
        actor_id: Optional[str],
        target_id: Optional[str],
        data: Dict[str, Any],
        now: datetime,
    ) -> None:
        self._db.add(
            GuildEventModel(
                guild_id=guild_id,
                event_type=event_type,
                actor_id=actor_id,
                target_id=target_id,
                data=data,
                created_at=now,
            )
        )

    def _record_transaction(
        self,
        guild_id: str,
        player_id: Optional[str],
        resource_type: ResourceType,
        sub_type: Optional[str],
        amount: int,
        balance_after: int,
        now: datetime,
    ) -> None:
        self._db.add(
            GuildResourceTransactionModel(
                guild_id=guild_id,
                player_id=player_id,
                resource_type=resource_type.value,
                sub_type=sub_type,
                amount=amount,
                balance_after=balance_after,
                created_at=now,
            )
        )

    def _announce_level_up(self, guild: Guild, result: LevelUpResult) -> None:
        if not result.leveled_up:
            return
        logger.info(f"Guild {guild.name} reached level {result.new_level}")
        self._emit(
            EventTypes.GUILD_LEVEL_UP,
            {
                "guild_id": guild.guild_id,
                "old_level": result.old_level,
                "new_level": result.new_level,
            },
        )

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        self._bus.emit(GameEvent(event_type=event_type, data=data, source=SOURCE))

    @staticmethod
    def _application_row(application: GuildApplication) -> GuildApplicationModel:
        return GuildApplicationModel(
            application_id=application.application_id,
            player_id=application.player_id,
            guild_id=application.guild_id,
            message=application.message,
            status=application.status.value,
            applied_at=application.applied_at,
            processed_by=application.processed_by,
            processed_at=application.processed_at,
        )

    @staticmethod
    def _application_from_row(row: GuildApplicationModel) -> GuildApplication:
        return GuildApplication(
            application_id=row.application_id,
            player_id=row.player_id,
            guild_id=row.guild_id,
            message=row.message,
            status=ApplicationStatus(row.status),
            applied_at=row.applied_at,
            processed_by=row.processed_by,
            processed_at=row.processed_at,
        )
