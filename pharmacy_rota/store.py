"""
store.py — Rota Store

One rota per calendar date. replace_for_date() deletes any existing rota
for the date and inserts the new one as a single unit of work, so a
regenerated draft supersedes the old one and a failed generation never
leaves a half-written rota behind.

Implementations:
  - InMemoryRotaStore: dict-backed, used by tests and dry runs
  - JsonRotaStore:     one JSON document on disk, rewritten atomically
                       (temp file + os.replace)

Housekeeping:
  - reassign():            hand-patch one assignment of a stored draft
  - delete_stale_drafts(): drop drafts dated more than N months back
"""

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

from pharmacy_rota.models import Rota, RotaStatus
from pharmacy_rota.schedule_config import STALE_DRAFT_MONTHS

logger = logging.getLogger(__name__)


class RotaStore:
    """Dict-of-rotas store; subclasses decide where the dict lives."""

    def __init__(self):
        self._rotas: Dict[str, Rota] = {}

    # persistence hooks
    def _load(self) -> Dict[str, Rota]:
        return self._rotas

    def _save(self, rotas: Dict[str, Rota]) -> None:
        self._rotas = rotas

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get(self, rota_id: str) -> Optional[Rota]:
        return self._load().get(rota_id)

    def get_by_date(self, date_str: str) -> Optional[Rota]:
        matches = [r for r in self._load().values() if r.date == date_str]
        return matches[0] if matches else None

    def list_rotas(self, start: Optional[str] = None, end: Optional[str] = None) -> List[Rota]:
        """Rotas sorted by date, optionally within [start, end] (ISO strings)."""
        rotas = sorted(self._load().values(), key=lambda r: r.date)
        if start:
            rotas = [r for r in rotas if r.date >= start]
        if end:
            rotas = [r for r in rotas if r.date <= end]
        return rotas

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def replace_for_date(self, rota: Rota) -> Rota:
        rotas = dict(self._load())
        stale = [rid for rid, r in rotas.items() if r.date == rota.date]
        for rid in stale:
            del rotas[rid]
        rotas[rota.id] = rota
        self._save(rotas)
        if stale:
            logger.info(f"Replaced {len(stale)} existing rota(s) for {rota.date}")
        return rota

    def delete_by_date(self, date_str: str) -> int:
        rotas = dict(self._load())
        stale = [rid for rid, r in rotas.items() if r.date == date_str]
        for rid in stale:
            del rotas[rid]
        if stale:
            self._save(rotas)
        return len(stale)

    def reassign(self, rota_id: str, index: int, staff_id: str) -> Rota:
        rotas = dict(self._load())
        rota = rotas.get(rota_id)
        if rota is None:
            raise KeyError(f"Rota not found: {rota_id}")
        if not 0 <= index < len(rota.assignments):
            raise IndexError(f"Assignment index out of bounds: {index}")
        rota.assignments[index].staff_id = staff_id
        self._save(rotas)
        logger.info(f"Rota {rota.date}: assignment {index} reassigned to {staff_id}")
        return rota

    def delete_stale_drafts(self, today: Optional[date] = None, months: int = STALE_DRAFT_MONTHS) -> int:
        """Delete draft rotas dated before today minus `months`. Returns count."""
        import pandas as pd

        today = today or date.today()
        cutoff = (pd.Timestamp(today) - pd.DateOffset(months=months)).date().isoformat()
        rotas = dict(self._load())
        stale = [
            rid for rid, r in rotas.items()
            if r.status is RotaStatus.DRAFT and r.date < cutoff
        ]
        for rid in stale:
            del rotas[rid]
        if stale:
            self._save(rotas)
        logger.info(f"Deleted {len(stale)} draft rotas older than {cutoff}")
        return len(stale)


class InMemoryRotaStore(RotaStore):
    pass


class JsonRotaStore(RotaStore):
    """Rotas kept in one JSON file: {"rotas": [...]}."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)

    def _load(self) -> Dict[str, Rota]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            data = json.load(f)
        rotas = [Rota.from_dict(r) for r in data.get("rotas", [])]
        return {r.id: r for r in rotas}

    def _save(self, rotas: Dict[str, Rota]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            {"rotas": [r.to_dict() for r in sorted(rotas.values(), key=lambda r: r.date)]},
            indent=2,
        )
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=self.path.name + ".", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as tmp:
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
