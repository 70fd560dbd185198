"""
Record Store: bounded history of committed calculations plus the
"last calculation" slot.

History is newest first and capped (5 by default). The last-calculation
slot is independent: it keeps the most recent result even after that result
is evicted from the history. Both are written through to the key-value
store on every change and restored from it at startup.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError as SchemaError

from .config import settings
from .exceptions import NotFoundError, PersistenceReadError
from .kv_store import KeyValueStore
from .schemas import EstimationResult

logger = logging.getLogger(__name__)

LAST_CALCULATION_KEY = "kfss_last_calculation"
RECENT_CALCULATIONS_KEY = "kfss_recent_calculations"


class RecordStore:

    def __init__(self, kv: KeyValueStore, limit: int = None):
        self.kv = kv
        self.limit = limit if limit is not None else settings.RECENT_LIMIT
        self._history = []
        self._last = None

    # --- Writes ---

    def append(self, result: EstimationResult):
        """Push to the head of history, drop the oldest beyond the cap, overwrite the last slot."""
        history = ([result] + self._history)[:self.limit]
        # Both keys in one write so history and last slot never disagree
        self.kv.set_many({
            RECENT_CALCULATIONS_KEY: self._history_json(history),
            LAST_CALCULATION_KEY: result.model_dump_json(),
        })
        self._history = history
        self._last = result

    def select(self, record_id: int) -> EstimationResult:
        """Make a history record the current last calculation."""
        record = self.find_by_id(record_id)
        self._persist_last(record)
        self._last = record
        return record

    def clear(self):
        self._history = []
        self._last = None
        self.kv.remove(RECENT_CALCULATIONS_KEY)
        self.kv.remove(LAST_CALCULATION_KEY)

    # --- Reads ---

    def all(self) -> tuple:
        """History, newest first."""
        return tuple(self._history)

    def get(self, record_id: int) -> Optional[EstimationResult]:
        for record in self._history:
            if record.id == record_id:
                return record
        return None

    def find_by_id(self, record_id: int) -> EstimationResult:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(record_id)
        return record

    def last_calculation(self) -> Optional[EstimationResult]:
        return self._last

    def max_id(self) -> int:
        ids = [r.id for r in self._history]
        if self._last is not None:
            ids.append(self._last.id)
        return max(ids, default=0)

    # --- Persistence ---

    def load_persisted(self):
        """
        Restore history and last slot from the key-value store.
        Unreadable data is logged and treated as empty, never fatal.
        """
        try:
            self._history = self._read_history()
        except PersistenceReadError as e:
            logger.warning("%s; starting with empty history", e)
            self._history = []

        try:
            self._last = self._read_last()
        except PersistenceReadError as e:
            logger.warning("%s; no last calculation", e)
            self._last = None

    def _read_history(self) -> list:
        raw = self.kv.get(RECENT_CALCULATIONS_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PersistenceReadError(RECENT_CALCULATIONS_KEY, f"invalid JSON ({e})")
        if not isinstance(data, list):
            raise PersistenceReadError(RECENT_CALCULATIONS_KEY, "expected a list")

        history = []
        for entry in data:
            try:
                history.append(EstimationResult.model_validate(entry))
            except SchemaError as e:
                logger.warning("Skipping unreadable history entry: %s", e.errors()[:1])
        return history[:self.limit]

    def _read_last(self) -> Optional[EstimationResult]:
        raw = self.kv.get(LAST_CALCULATION_KEY)
        if not raw:
            return None
        try:
            return EstimationResult.model_validate_json(raw)
        except SchemaError as e:
            raise PersistenceReadError(LAST_CALCULATION_KEY, f"{e.error_count()} schema error(s)")

    def _history_json(self, history: list) -> str:
        return json.dumps([r.model_dump(mode="json") for r in history])

    def _persist_last(self, record: EstimationResult):
        self.kv.set(LAST_CALCULATION_KEY, record.model_dump_json())
