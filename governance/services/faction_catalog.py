"""Faction catalog seeding from the bundled JSON file."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from governance.config import settings
from governance.core.clock import utcnow
from governance.core.errors import ValidationError
from governance.core.logging import get_logger
from governance.core.reputation import RelationKind
from governance.db.database import transaction
from governance.db.models import FactionModel, FactionRelationshipModel

logger = get_logger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def resolve_data_path(data_path: Optional[str] = None) -> Path:
    """Relative paths are tried against the cwd first, then the project root."""
    path = Path(data_path or settings.FACTION_DATA_PATH)
    if path.is_absolute() or path.exists():
        return path
    return _PROJECT_ROOT / path


class FactionCatalogLoader:
    """Insert missing factions and relationship edges. Existing rows are kept."""

    def __init__(self, db_session: Session, data_path: Optional[str] = None) -> None:
        self._db = db_session
        self._path = resolve_data_path(data_path)

    def load_file(self) -> Dict[str, Any]:
        with open(self._path, encoding="utf-8") as f:
            return json.load(f)

    def seed(self, now: Optional[datetime] = None) -> Tuple[int, int]:
        """Returns (factions added, edges added)."""
        data = self.load_file()
        now = now or utcnow()
        factions_added = 0
        edges_added = 0

        with transaction(self._db):
            for entry in data.get("factions", []):
                if self._db.get(FactionModel, entry["id"]) is not None:
                    continue
                self._db.add(
                    FactionModel(
                        faction_id=entry["id"],
                        name=entry["name"],
                        faction_type=entry["type"],
                        description=entry.get("description", ""),
                        created_at=now,
                    )
                )
                factions_added += 1
            self._db.flush()

            for entry in data.get("relationships", []):
                kind = RelationKind(entry["kind"])
                strength = float(entry.get("strength", 1.0))
                if not 0.0 <= strength <= 1.0:
                    raise ValidationError(
                        f"Relationship strength out of range: "
                        f"{entry['faction']} -> {entry['target']}"
                    )
                pairs = [(entry["faction"], entry["target"])]
                if entry.get("mutual"):
                    pairs.append((entry["target"], entry["faction"]))
                for source, target in pairs:
                    if self._db.get(FactionRelationshipModel, (source, target)) is not None:
                        continue
                    self._db.add(
                        FactionRelationshipModel(
                            faction_id=source,
                            target_faction_id=target,
                            kind=kind.value,
                            strength=strength,
                        )
                    )
                    edges_added += 1

        logger.info(
            f"Faction catalog seeded from {self._path.name}: "
            f"{factions_added} factions, {edges_added} relationships added"
        )
        return factions_added, edges_added
