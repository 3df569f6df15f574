"""Custom exceptions for miniapp."""

from typing import Any


class MiniAppError(Exception):
    """Base exception for all miniapp errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class InvalidArgumentsError(MiniAppError):
    """Raised when command-line input or configuration is invalid."""


class ProjectFileNotFoundError(MiniAppError):
    """Raised when an expected project file is absent."""


class CommandFailedError(MiniAppError):
    """Raised when a child process exits non-zero or its output is unreadable."""


class DocumentUnreadableError(MiniAppError):
    """Raised when project.pbxproj cannot be loaded as an object graph."""


class TargetResolutionError(MiniAppError):
    """Base class for build target selection failures."""

    def __init__(
        self,
        message: str,
        available: list[str] | None = None,
    ) -> None:
        super().__init__(message, details={"available": available or []})
        self.available = available or []


class NoEligibleTargetError(TargetResolutionError):
    """Raised when the project has no application targets."""


class TargetNotFoundError(TargetResolutionError):
    """Raised when an explicitly named target does not exist."""


class AmbiguousTargetError(TargetResolutionError):
    """Raised when several application targets match and none is preferred."""


class InjectionError(MiniAppError):
    """Base class for build phase injection failures."""


class NoInsertionPointError(InjectionError):
    """Raised when no section anchor exists for a new build phase."""


class TargetBlockNotFoundError(InjectionError):
    """Raised when the selected target's record is missing from the text."""


class BuildStepListMissingError(InjectionError):
    """Raised when a target record has no buildPhases list."""


class BuildStepListMalformedError(InjectionError):
    """Raised when a buildPhases list is never closed."""
