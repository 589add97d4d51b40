from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


class NarcDetectError(Exception):
    """Base exception for project-level, domain-specific errors."""


@dataclass(frozen=True)
class UnknownIdentifierError(NarcDetectError):
    """
    Raised when a drug or route token cannot be resolved.

    token: the raw text the user provided
    suggestions: close matches among known names/aliases (may be empty)
    """

    token: str
    suggestions: tuple[str, ...]

    kind = "identifier"

    def __init__(self, token: str, suggestions: Iterable[str] | None = None):
        object.__setattr__(self, "token", str(token))
        object.__setattr__(self, "suggestions", tuple(suggestions or ()))

    def __str__(self) -> str:
        base = f"{self.kind.capitalize()} not found: {self.token}"
        if self.suggestions:
            return base + f". Did you mean: {', '.join(self.suggestions)}?"
        return base


class UnknownDrugError(UnknownIdentifierError):
    kind = "drug"


class UnknownRouteError(UnknownIdentifierError):
    kind = "route"


class InvalidInputError(NarcDetectError, ValueError):
    """A numeric input is missing, non-numeric or out of its allowed range."""

    def __init__(self, field: str, value: object, requirement: str):
        self.field = field
        self.value = value
        self.requirement = requirement
        super().__init__(f"{field} must be {requirement} (got {value!r})")


class ReferenceDataError(NarcDetectError):
    """Curation files or rule definitions failed validation."""
