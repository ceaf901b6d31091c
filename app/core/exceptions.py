"""
Error taxonomy shared by the store, query layer, aggregator and client facade.

Every error carries a stable machine-readable code so the HTTP layer and the
client facade can render it without inspecting messages. "No data" is never
an error: empty lists and null accuracy represent absence.
"""
from typing import Any, Dict, Optional

NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
CONFLICT = "CONFLICT"
UNAVAILABLE = "UNAVAILABLE"
INTERNAL_ERROR = "INTERNAL_ERROR"


class PicksError(Exception):
    """Base class for all domain errors."""

    code: str = INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Stable error shape used by the API and the client facade."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFoundError(PicksError):
    """An identifier lookup found no record."""

    code = NOT_FOUND
    status_code = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: Any) -> "NotFoundError":
        return cls(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})


class ValidationError(PicksError):
    """Malformed input: bad date, out-of-range confidence, start after end."""

    code = VALIDATION_ERROR
    status_code = 400


class ConflictError(PicksError):
    """A write lost a race or collides with existing state."""

    code = CONFLICT
    status_code = 409


class UnavailableError(PicksError):
    """The backing store (or, for the client, the API) cannot be reached."""

    code = UNAVAILABLE
    status_code = 503


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (NotFoundError, ValidationError, ConflictError, UnavailableError)
}
