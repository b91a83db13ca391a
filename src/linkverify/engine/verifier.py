# src/linkverify/engine/verifier.py
"""Verifier: orchestrates a verification run.

Lifecycle:
    Verifier(settings)
      .start(output_dir, num_partitions, concurrent)   CREATED -> RUNNING
      .wait_for_completion()                           -> SUCCEEDED | FAILED | CANCELLED
      .verify(expected_referenced)                     -> VerificationReport

Job success (the computation finished) and verification success (the data
is intact) are separate questions: run() answers the first, verify() the
second.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from linkverify.contracts.enums import Classification, JobState, NodeFields
from linkverify.contracts.errors import EngineExecutionError, VerifierStateError
from linkverify.contracts.results import VerificationReport, Violation
from linkverify.core.config import LinkVerifySettings, StoreSettings
from linkverify.core.flushed import encode_flushed, load_flushed
from linkverify.core.logging import get_logger
from linkverify.core.store import NodeStore
from linkverify.engine.job import JobConfig, MapReduceJob
from linkverify.engine.retry import RetryConfig

logger = get_logger(__name__)

StoreFactory = Callable[[StoreSettings], NodeStore]


class Verifier:
    """Checks that no node id in the store is referenced without being defined."""

    def __init__(
        self,
        settings: LinkVerifySettings,
        *,
        store_factory: StoreFactory = NodeStore.from_settings,
    ) -> None:
        self._settings = settings
        self._store_factory = store_factory
        self._job: MapReduceJob | None = None

    @property
    def state(self) -> JobState:
        if self._job is None:
            return JobState.CREATED
        return self._job.state

    @property
    def failure(self) -> EngineExecutionError | None:
        """Engine-level failure of the submitted job, if any."""
        return self._require_job("failure").failure

    def _require_job(self, operation: str) -> MapReduceJob:
        if self._job is None:
            raise VerifierStateError(f"{operation}() called before start()")
        return self._job

    def start(self, output_dir: Path | str, num_partitions: int, concurrent: bool = False) -> None:
        """Open the store, optionally load the flushed filter, and submit the job.

        Args:
            output_dir: Directory for diagnostic part files (must not exist or be empty)
            num_partitions: Number of reduce partitions
            concurrent: Filter out nodes that are not yet flushed, so the check
                can run alongside an active generator

        Raises:
            VerifierStateError: If start() was already called.
            StorageAccessError: If the store or flushed table cannot be read.
            ConfigurationError: For invalid arguments or an unusable output directory.
        """
        if self._job is not None:
            raise VerifierStateError("start() called twice; create a new Verifier per run")

        output_path = Path(output_dir).expanduser()
        engine = self._settings.engine
        logger.info(
            "verify_started",
            output_dir=str(output_path),
            num_partitions=num_partitions,
            concurrent=concurrent,
            input_splits=engine.input_splits,
        )

        store = self._store_factory(self._settings.store)
        try:
            if concurrent:
                flushed_entries = tuple(encode_flushed(load_flushed(store)))
                fields = NodeFields.ALL
            else:
                # No filtering: existence is implied by the key, only prev is needed
                flushed_entries = ()
                fields = NodeFields.PREV

            config = JobConfig(
                output_dir=output_path,
                num_partitions=num_partitions,
                input_splits=engine.input_splits,
                fields=fields,
                flushed_entries=flushed_entries,
                map_workers=engine.map_workers,
                reduce_workers=engine.reduce_workers,
                retry=RetryConfig.from_settings(engine),
                duplicate_policy=engine.duplicate_policy,
                speculative_execution=engine.speculative_execution,
            )
            job = MapReduceJob(config, store)
            job.submit()
        except BaseException:
            store.close()
            raise

        self._job = job

    def is_complete(self) -> bool:
        return self._require_job("is_complete").is_complete()

    def is_successful(self) -> bool:
        return self._require_job("is_successful").is_successful()

    def wait_for_completion(self, timeout: float | None = None) -> bool:
        """Block until the job finishes. Returns True iff it succeeded."""
        return self._require_job("wait_for_completion").wait_for_completion(timeout)

    def cancel(self) -> None:
        """Cancel the running job. Its counters are discarded."""
        self._require_job("cancel").cancel()

    def counters(self) -> dict[Classification, int]:
        """Final counters of a completed job."""
        job = self._require_job("counters")
        if not job.is_complete():
            raise VerifierStateError("counters() called before the job completed")
        return job.counters()

    def run(self, output_dir: Path | str, num_partitions: int, concurrent: bool = False) -> int:
        """Start, wait, and return a process exit code (0 on job success)."""
        self.start(output_dir, num_partitions, concurrent)
        return 0 if self.wait_for_completion() else 1

    def verify(self, expected_referenced: int) -> VerificationReport:
        """Check the counters of a completed job against expectations.

        Passes iff the job succeeded, REFERENCED == expected_referenced,
        UNREFERENCED == 0 and UNDEFINED == 0. A failed or cancelled job has
        no usable counters and never passes. Every condition is checked and
        each violation is logged, whichever fails first.

        Raises:
            VerifierStateError: If called before start() or before completion.
        """
        counters = self.counters()
        referenced = counters[Classification.REFERENCED]
        unreferenced = counters[Classification.UNREFERENCED]
        undefined = counters[Classification.UNDEFINED]

        violations: list[Violation] = []
        state = self.state
        if state != JobState.SUCCEEDED:
            violations.append(
                Violation(
                    condition="job_not_successful",
                    message=f"Verification job ended {state.value}; its counters are not a verdict",
                    expected=1,
                    actual=0,
                )
            )
        if referenced != expected_referenced:
            violations.append(
                Violation(
                    condition="referenced_count",
                    message="Expected referenced count does not match actual referenced count",
                    expected=expected_referenced,
                    actual=referenced,
                )
            )
        if unreferenced > 0:
            violations.append(
                Violation(
                    condition="no_unreferenced",
                    message="Unreferenced nodes were not expected",
                    expected=0,
                    actual=unreferenced,
                )
            )
        if undefined > 0:
            violations.append(
                Violation(
                    condition="no_undefined",
                    message="Found undefined nodes",
                    expected=0,
                    actual=undefined,
                )
            )

        for violation in violations:
            logger.error(
                "verification_violation",
                condition=violation.condition,
                detail=violation.message,
                expected=violation.expected,
                actual=violation.actual,
            )
        if not violations:
            logger.info("verification_passed", referenced=referenced)

        return VerificationReport(
            expected_referenced=expected_referenced,
            counters=counters,
            violations=tuple(violations),
        )
