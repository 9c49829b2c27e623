"""In-memory index of active guilds and player memberships.

Owned by the application lifespan and passed to GuildService. Entries are
replaced only after the corresponding store write has committed.
"""

from typing import Dict, Iterable, List, Optional

from governance.core.guild import Guild
from governance.core.logging import get_logger

logger = get_logger(__name__)


class GuildRegistry:
    def __init__(self) -> None:
        self._guilds: Dict[str, Guild] = {}
        self._player_guild: Dict[str, str] = {}

    def load(self, guilds: Iterable[Guild]) -> int:
        self.clear()
        for guild in guilds:
            self.put(guild)
        logger.info(
            f"Guild registry loaded: {len(self._guilds)} guilds, "
            f"{len(self._player_guild)} members"
        )
        return len(self._guilds)

    def get(self, guild_id: str) -> Optional[Guild]:
        return self._guilds.get(guild_id)

    def guild_of(self, player_id: str) -> Optional[Guild]:
        guild_id = self._player_guild.get(player_id)
        return self._guilds.get(guild_id) if guild_id else None

    def put(self, guild: Guild) -> None:
        """Replace the cached entity and re-index its roster. Inactive guilds are evicted."""
        self._unindex(guild.guild_id)
        if not guild.is_active:
            self._guilds.pop(guild.guild_id, None)
            return
        self._guilds[guild.guild_id] = guild
        for player_id in guild.members:
            self._player_guild[player_id] = guild.guild_id

    def evict(self, guild_id: str) -> None:
        self._unindex(guild_id)
        self._guilds.pop(guild_id, None)

    def _unindex(self, guild_id: str) -> None:
        for player_id in [p for p, g in self._player_guild.items() if g == guild_id]:
            del self._player_guild[player_id]

    def active_guilds(self) -> List[Guild]:
        return list(self._guilds.values())

    def clear(self) -> None:
        self._guilds.clear()
        self._player_guild.clear()

    def __len__(self) -> int:
        return len(self._guilds)

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._guilds
