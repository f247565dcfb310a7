from typing import Any, List, Optional


class PikaError(Exception):
    """Base class for errors raised by the planner service."""


class InvalidDueDateError(PikaError, ValueError):
    """A due date string could not be parsed as YYYY-MM-DD."""

    def __init__(self, raw: str):
        super().__init__(f"invalid due date {raw!r}, expected YYYY-MM-DD")
        self.raw = raw


class PlannerConfigError(PikaError):
    """Planner settings reached the allocator outside their valid range."""


class SyllabusValidationError(PikaError):
    """Structured syllabus data failed schema validation."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class UnsupportedFileTypeError(PikaError):
    pass


class LlmConfigurationError(PikaError):
    """No API key or endpoint is configured for the requested provider."""


class LlmRequestError(PikaError):
    """The model provider returned an error or an unparseable response."""
