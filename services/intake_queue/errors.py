"""Structured exceptions raised by the intake queue."""

from __future__ import annotations

from typing import Any, Mapping

__all__ = [
    "CapacityExceededError",
    "DuplicatePatientError",
    "InvalidRangeError",
    "PatientNotFoundError",
    "QueueError",
    "SeniorAgeRequirementError",
]


class QueueError(RuntimeError):
    """Base exception carrying a title, a detail message and extensions."""

    default_title = "Queue Error"

    def __init__(
        self,
        detail: str | None = None,
        *,
        title: str | None = None,
        extensions: Mapping[str, Any] | None = None,
    ) -> None:
        message = detail or title or self.default_title
        super().__init__(message)
        self.detail = detail or message
        self.title = title or self.default_title
        self.extensions = dict(extensions or {})

    def to_dict(self) -> dict[str, Any]:
        """Return a payload a caller can render without touching internals."""

        payload: dict[str, Any] = dict(self.extensions)
        payload.update({"title": self.title, "detail": self.detail})
        return payload


class CapacityExceededError(QueueError):
    """Raised when admitting or moving a patient would overflow a limit."""

    default_title = "Capacity Exceeded"

    def __init__(
        self,
        tier: Any,
        *,
        current: int,
        limit: int,
        scope: str = "tier",
        detail: str | None = None,
    ) -> None:
        self.tier = tier
        self.current = current
        self.limit = limit
        self.scope = scope
        tier_value = getattr(tier, "value", tier)
        if detail is None:
            if scope == "total":
                detail = f"The waiting room is full ({current}/{limit} patients)."
            else:
                detail = f"The {tier_value} queue is full ({current}/{limit} patients)."
        super().__init__(
            detail=detail,
            title=self.default_title,
            extensions={
                "tier": tier_value,
                "current": current,
                "limit": limit,
                "scope": scope,
            },
        )


class InvalidRangeError(QueueError, ValueError):
    """Raised when an age range has its bounds reversed."""

    default_title = "Invalid Range"

    def __init__(self, min_age: int, max_age: int) -> None:
        self.min_age = min_age
        self.max_age = max_age
        super().__init__(
            detail=f"Minimum age {min_age} is greater than maximum age {max_age}.",
            title=self.default_title,
            extensions={"minAge": min_age, "maxAge": max_age},
        )


class SeniorAgeRequirementError(QueueError, ValueError):
    """Raised when a patient below the senior age is moved to the senior tier."""

    default_title = "Senior Age Requirement"

    def __init__(self, name: str, *, age: int, threshold: int) -> None:
        self.name = name
        self.age = age
        self.threshold = threshold
        super().__init__(
            detail=(
                f"Patient is {age} years old. Senior status requires age "
                f"{threshold} or older."
            ),
            title=self.default_title,
            extensions={"age": age, "threshold": threshold},
        )


class DuplicatePatientError(QueueError):
    """Raised when a name is already taken by a waiting patient."""

    default_title = "Duplicate Patient"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            detail=f"A patient named '{name}' is already waiting.",
            title=self.default_title,
        )


class PatientNotFoundError(QueueError, LookupError):
    """Raised by the admin layer when a named patient is not waiting."""

    default_title = "Patient Not Found"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            detail=f"No waiting patient is named '{name}'.",
            title=self.default_title,
        )
