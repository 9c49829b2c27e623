"""Read-through cache of resolved standings, keyed by (player, faction)."""

from typing import Dict, Optional, Tuple

from governance.core.reputation import Standing

CacheKey = Tuple[str, str]


class StandingCache:
    """Owned by ReputationService. Updated only after a successful commit."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Standing] = {}

    def get(self, player_id: str, faction_id: str) -> Optional[Standing]:
        return self._entries.get((player_id, faction_id))

    def put(self, player_id: str, faction_id: str, standing: Standing) -> None:
        self._entries[(player_id, faction_id)] = standing

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries
