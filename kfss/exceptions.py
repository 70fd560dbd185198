"""
Error kinds raised by the estimator, record store and session.

None of these are fatal: routers turn them into HTTP responses and the
record store recovers from PersistenceReadError locally.
"""


class KFSSError(Exception):
    """Base class for all calculator errors."""


class ValidationError(KFSSError):
    """Required input missing or invalid. Nothing is computed or persisted."""

    def __init__(self, fields: list, messages: list = None):
        self.fields = list(fields)
        self.messages = list(messages or [])
        detail = "; ".join(self.messages) if self.messages else ", ".join(self.fields)
        super().__init__(f"Invalid input: {detail}")


class PersistenceReadError(KFSSError):
    """Persisted data could not be parsed. Callers fall back to empty state."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Could not read persisted '{key}': {reason}")


class NotFoundError(KFSSError):
    """Lookup miss: a calculation id not in the history, or an unknown appliance."""

    def __init__(self, record_id, kind: str = "Calculation"):
        self.record_id = record_id
        self.kind = kind
        super().__init__(f"{kind} {record_id} not found")
