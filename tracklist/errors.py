"""
Extraction error taxonomy.

Fatal errors abort the scroll loop and end the stream with one failure
record. Non-fatal ones are logged where they happen and never reach the
caller.
"""
from __future__ import annotations


class ExtractionError(Exception):
    fatal = True

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class PageNavigationFailure(ExtractionError):
    """The playlist page could not be loaded."""


class SelectorTimeout(ExtractionError):
    """No track rows rendered in time: private, removed, or markup changed."""


class ExtractionEvaluationFailure(ExtractionError):
    """Reading the rendered rows out of the page failed."""


class ScrollInteractionFailure(ExtractionError):
    fatal = False


class SessionTeardownFailure(ExtractionError):
    fatal = False


_KINDS: dict[str, type[ExtractionError]] = {
    cls.__name__: cls
    for cls in (
        ExtractionError,
        PageNavigationFailure,
        SelectorTimeout,
        ExtractionEvaluationFailure,
        ScrollInteractionFailure,
        SessionTeardownFailure,
    )
}


def error_from_kind(kind: str, message: str, detail: str | None = None) -> ExtractionError:
    """Rebuild a typed error from a failure event's fields."""
    return _KINDS.get(kind, ExtractionError)(message, detail)
