"""Shared filter presets behind an explicit settings repository.

WHAT:
    Named combinations of dashboard filters (date range, sector, branch,
    supplier ...) that every page can save, apply and delete.

WHY:
    Presets are process-wide configuration with an explicit lifecycle
    (save / apply / delete on user action). They live behind a small
    repository interface instead of ambient global state so the storage
    can be swapped (SQL table in the API, in-memory in tests).

REFERENCES:
    - spendboard/models.py:AppSetting
    - spendboard/routers/presets.py
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from spendboard.models import AppSetting

logger = logging.getLogger(__name__)

SHARED_FILTER_PRESETS_KEY = "sharedFilterPresets"
LEGACY_DASHBOARD_PRESETS_KEY = "dashboardFilterPresets"


class SettingsRepository(Protocol):
    def read(self, key: str) -> Any: ...

    def write(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemorySettingsRepository:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(initial or {})

    def read(self, key: str) -> Any:
        return self._values.get(key)

    def write(self, key: str, value: Any) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class SqlSettingsRepository:
    """Settings stored as JSON values in the app_settings table.

    Writes are committed immediately; each call is one user action.
    """

    def __init__(self, db: Session):
        self.db = db

    def read(self, key: str) -> Any:
        row = self.db.get(AppSetting, key)
        return row.value if row else None

    def write(self, key: str, value: Any) -> None:
        row = self.db.get(AppSetting, key)
        if row is None:
            row = AppSetting(key=key, value=value)
            self.db.add(row)
        else:
            row.value = value
            # JSON values are often mutated in place, so force the UPDATE
            flag_modified(row, "value")
        self.db.commit()

    def delete(self, key: str) -> None:
        row = self.db.get(AppSetting, key)
        if row is not None:
            self.db.delete(row)
            self.db.commit()


def _parse_presets(raw: Any, key: str) -> List[Dict[str, Any]]:
    if not raw:
        return []
    if isinstance(raw, str):
        # Values copied over from browser storage are JSON strings
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.error(f"[PRESETS] Could not parse presets stored under {key}: {e}")
            return []
    if not isinstance(raw, list):
        logger.error(f"[PRESETS] Presets stored under {key} are not a list, ignoring")
        return []
    return [p for p in raw if isinstance(p, dict)]


class FilterPresetStore:
    """Load/save/delete presets under the shared key, migrating legacy ones."""

    def __init__(self, repository: SettingsRepository):
        self.repository = repository

    def load(self) -> List[Dict[str, Any]]:
        stored = _parse_presets(self.repository.read(SHARED_FILTER_PRESETS_KEY), SHARED_FILTER_PRESETS_KEY)
        if stored:
            return stored

        legacy = _parse_presets(self.repository.read(LEGACY_DASHBOARD_PRESETS_KEY), LEGACY_DASHBOARD_PRESETS_KEY)
        if legacy:
            logger.info(f"[PRESETS] Migrating {len(legacy)} legacy dashboard presets to the shared key")
            self.repository.write(SHARED_FILTER_PRESETS_KEY, legacy)
        return legacy

    def persist(self, presets: List[Dict[str, Any]]) -> None:
        self.repository.write(SHARED_FILTER_PRESETS_KEY, presets)

    def save(self, name: str, filters: Dict[str, Any]) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise ValueError("Preset name must not be blank")

        preset = {"id": str(uuid.uuid4()), "name": name, "filters": dict(filters or {})}
        presets = self.load()
        presets.append(preset)
        self.persist(presets)
        return preset

    def get(self, preset_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.load() if p.get("id") == preset_id), None)

    def delete(self, preset_id: str) -> bool:
        presets = self.load()
        remaining = [p for p in presets if p.get("id") != preset_id]
        if len(remaining) == len(presets):
            return False
        self.persist(remaining)
        return True
