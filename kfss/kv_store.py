"""
Durable key-value storage: the persistence boundary for the record store
and the calculator session.

Values are opaque strings (JSON documents or "true"/"false" flags).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models


class KeyValueStore:
    """get/set/remove contract. Synchronous, process-local."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str):
        raise NotImplementedError

    def set_many(self, items: dict):
        """Write several keys as one unit."""
        for key, value in items.items():
            self.set(key, value)

    def remove(self, key: str):
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Lives as long as the object does."""

    def __init__(self, initial: dict = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value

    def remove(self, key: str):
        self._data.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """
    Backed by the stored_values table. Every write commits immediately so a
    value set here survives a process restart.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.query(models.StoredValue).filter(models.StoredValue.key == key).first()
        return row.value if row else None

    def set(self, key: str, value: str):
        self.set_many({key: value})

    def set_many(self, items: dict):
        """All rows in one commit; nothing is written if any row fails."""
        try:
            for key, value in items.items():
                row = self.db.query(models.StoredValue).filter(models.StoredValue.key == key).first()
                if row:
                    row.value = value
                    row.updated_at = datetime.utcnow()
                else:
                    self.db.add(models.StoredValue(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def remove(self, key: str):
        self.db.query(models.StoredValue).filter(models.StoredValue.key == key).delete()
        self.db.commit()
