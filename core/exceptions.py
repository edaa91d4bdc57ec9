from __future__ import annotations

from django.core.exceptions import ObjectDoesNotExist, ValidationError


class InvalidTransition(ValidationError):
    """A status change that the transition table does not allow.

    Subclasses ValidationError so admin actions and forms can surface it
    like any other invalid input.
    """

    def __init__(self, source, target, *, label: str = "status"):
        self.source = source
        self.target = target
        message = f"Invalid {label} transition from '{_label(source)}' to '{_label(target)}'."
        super().__init__(message, code="invalid_transition")


class NotFound(ObjectDoesNotExist):
    """A referenced record is missing (or soft-deleted)."""


def _label(value) -> str:
    return str(getattr(value, "label", value))
