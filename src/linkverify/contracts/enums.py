"""Status codes, classifications and kinds used across subsystem boundaries."""

from enum import StrEnum


class Classification(StrEnum):
    """Outcome of aggregating every assertion received for one node id.

    The values double as the job counter names.

    Values:
        REFERENCED: Defined and named by at least one predecessor pointer
        UNREFERENCED: Defined but never named as a predecessor
        UNDEFINED: Named as a predecessor but never defined (lost write)
        IGNORED: Skipped during expansion because it is not yet flushed
        CORRUPT: Malformed or multiply-defined record
    """

    UNREFERENCED = "UNREFERENCED"
    UNDEFINED = "UNDEFINED"
    REFERENCED = "REFERENCED"
    CORRUPT = "CORRUPT"
    IGNORED = "IGNORED"


class AssertionKind(StrEnum):
    """Kind of assertion emitted by the expansion stage."""

    SELF = "self"
    REFERENCE = "reference"


class JobState(StrEnum):
    """Lifecycle state of a verification job.

    CREATED -> RUNNING -> SUCCEEDED | FAILED | CANCELLED
    """

    CREATED = "created"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED)


class DuplicatePolicy(StrEnum):
    """How the aggregation stage treats more than one self-assertion per id.

    LENIENT: duplicates are indistinguishable from a single definition
    CORRUPT: duplicates additionally increment the CORRUPT counter
    """

    LENIENT = "lenient"
    CORRUPT = "corrupt"


class NodeFields(StrEnum):
    """Field projection for node scans."""

    PREV = "prev"
    ALL = "all"
