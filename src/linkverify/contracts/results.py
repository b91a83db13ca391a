"""Result types returned across the verifier boundary."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from linkverify.contracts.enums import Classification


@dataclass(frozen=True)
class Violation:
    """One failed verification condition."""

    condition: str
    message: str
    expected: int
    actual: int


@dataclass(frozen=True)
class VerificationReport:
    """Outcome of Verifier.verify().

    Every condition is evaluated, so violations lists ALL failures rather
    than the first one found. Truthy iff the run passed.
    """

    expected_referenced: int
    counters: Mapping[Classification, int]
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return not self.violations

    def __bool__(self) -> bool:
        return self.passed


@dataclass(frozen=True)
class AggregationResult:
    """Classification of a single node id after grouping its assertions.

    referrers preserves arrival order; definitions counts SELF assertions.
    """

    node_id: int
    classification: Classification
    referrers: tuple[int, ...]
    definitions: int
