"""Exception taxonomy for verification runs.

Infrastructure problems are exceptions. A data-level integrity violation
is NOT an exception: it is reported through VerificationReport.
"""

from __future__ import annotations


class LinkVerifyError(Exception):
    """Base class for all linkverify errors."""


class StorageAccessError(LinkVerifyError):
    """Raised when the node table or the flushed table cannot be read.

    Fatal. Filtering is all-or-nothing, so a failed checkpoint read never
    degrades into an unfiltered or partially filtered run.
    """


class ConfigurationError(LinkVerifyError):
    """Raised at startup for invalid settings or argument combinations."""


class VerifierStateError(LinkVerifyError):
    """Raised when a Verifier operation is called in the wrong lifecycle state."""


class EngineExecutionError(LinkVerifyError):
    """Raised when the map/reduce computation itself fails.

    Attributes:
        task_id: Identifier of the failing task (e.g. "map-00003"), if any
        attempts: Number of attempts made before giving up
    """

    def __init__(self, message: str, *, task_id: str | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.attempts = attempts
