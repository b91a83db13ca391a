"""Shared contracts: records, enums, errors and results."""

from linkverify.contracts.enums import (
    AssertionKind,
    Classification,
    DuplicatePolicy,
    JobState,
    NodeFields,
)
from linkverify.contracts.errors import (
    ConfigurationError,
    EngineExecutionError,
    LinkVerifyError,
    StorageAccessError,
    VerifierStateError,
)
from linkverify.contracts.records import NO_PREDECESSOR, Assertion, FlushedCheckpoint, Node
from linkverify.contracts.results import AggregationResult, VerificationReport, Violation

__all__ = [
    "NO_PREDECESSOR",
    "AggregationResult",
    "Assertion",
    "AssertionKind",
    "Classification",
    "ConfigurationError",
    "DuplicatePolicy",
    "EngineExecutionError",
    "FlushedCheckpoint",
    "JobState",
    "LinkVerifyError",
    "Node",
    "NodeFields",
    "StorageAccessError",
    "VerificationReport",
    "VerifierStateError",
    "Violation",
]
