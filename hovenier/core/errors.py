from __future__ import annotations

from typing import Any, Dict, Optional


class HovenierError(Exception):
    """
    Base for all domain errors.
    - code: stable machine-readable code (API / tests match on this)
    - message: human readable (nl)
    - meta: explainability payload
    """

    code: str = "ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        self.code = str(code or self.code)
        self.message = str(message)
        self.meta = meta or {}
        super().__init__(f"{self.code}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "meta": self.meta}


class ValidationError(HovenierError):
    """Malformed input (empty description, negative amounts, unknown id). Caller may correct and retry."""

    code = "VALIDATION_ERROR"


class PreconditionError(HovenierError):
    """Action not legal in the current state. State is left unchanged."""

    code = "PRECONDITION_FAILED"


class ConfirmationRequired(PreconditionError):
    """Destructive action requested without explicit confirmation."""

    code = "CONFIRMATION_REQUIRED"


class NotFoundError(HovenierError):
    code = "NOT_FOUND"


class PersistenceError(HovenierError):
    """Store failure. In-memory state from before the call stays valid."""

    code = "PERSISTENCE_ERROR"


class SettlementError(PersistenceError):
    """
    Betaling + archivering konden niet samen worden vastgelegd.
    Niets is opgeslagen; de factuur staat nog op de oude status.
    """

    code = "SETTLEMENT_FAILED"
