"""
Typed failures raised by the social graph and rating services.

Each error carries a machine-readable kind and the ids involved. Formatting
a human-readable message is left to the client.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for logical failures reported synchronously to the caller."""

    kind = "service_error"

    def __init__(self, **context: Any):
        self.context: Dict[str, Any] = context
        super().__init__(self.kind, context)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, **self.context}


class Unauthenticated(ServiceError):
    kind = "unauthenticated"


class InvalidTarget(ServiceError):
    """The action targets the acting user themself."""

    kind = "invalid_target"


class NotFound(ServiceError):
    kind = "not_found"


class Forbidden(ServiceError):
    """The actor is not allowed to perform this action on the record."""

    kind = "forbidden"


class AlreadyExists(ServiceError):
    kind = "already_exists"


class Blocked(ServiceError):
    """A block between the two users forbids the action."""

    kind = "blocked"


class SelfRating(ServiceError):
    kind = "self_rating"


class AlreadySubmitted(ServiceError):
    kind = "already_submitted"


def require_actor(acting_user_id: Optional[int]) -> int:
    """Return the acting user id, or raise Unauthenticated if there is none."""
    if acting_user_id is None:
        raise Unauthenticated()
    return acting_user_id
