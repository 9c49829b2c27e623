"""Player directory: level and last-login lookups."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from governance.core.clock import utcnow
from governance.core.errors import NotFoundError, ValidationError
from governance.core.logging import get_logger
from governance.db.models import PlayerModel

logger = get_logger(__name__)


class PlayerDirectory:
    """DB-backed view of the player roster owned by the session layer."""

    def __init__(self, db_session: Session) -> None:
        self._db = db_session

    def _row(self, player_id: str) -> PlayerModel:
        row = self._db.get(PlayerModel, player_id)
        if row is None:
            raise NotFoundError(f"Unknown player: {player_id}")
        return row

    def exists(self, player_id: str) -> bool:
        return self._db.get(PlayerModel, player_id) is not None

    def get_level(self, player_id: str) -> int:
        return self._row(player_id).level

    def get_last_login(self, player_id: str) -> Optional[datetime]:
        row = self._db.get(PlayerModel, player_id)
        return row.last_login if row else None

    def register(
        self,
        player_id: str,
        level: int = 1,
        display_name: Optional[str] = None,
        last_login: Optional[datetime] = None,
    ) -> PlayerModel:
        """Insert or update a player row. Flushes; the caller commits."""
        if level < 1:
            raise ValidationError("Player level must be at least 1")
        row = self._db.get(PlayerModel, player_id)
        if row is None:
            row = PlayerModel(player_id=player_id, created_at=utcnow())
            self._db.add(row)
        row.level = level
        if display_name is not None:
            row.display_name = display_name
        if last_login is not None:
            row.last_login = last_login
        self._db.flush()
        logger.debug(f"Player registered: {player_id} (level={level})")
        return row

    def record_login(self, player_id: str, now: Optional[datetime] = None) -> None:
        self._row(player_id).last_login = now or utcnow()
        self._db.flush()
