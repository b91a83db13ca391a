# src/linkverify/engine/job.py
"""In-process map/reduce job.

Stands in for a distributed execution engine:

- map tasks, one per input split, run on a thread pool and scan the store
- committed map output is routed into a hash-partitioned shuffle
- the shuffle is a barrier: no reduce task starts before every map task
  has committed
- reduce tasks, one per partition, run on a second thread pool and write
  part files
- failed attempts are retried; only successful attempts commit output
  and counters
- speculative execution is never used

The job runs on a background thread after submit(). Status queries never
block.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from linkverify.contracts.enums import Classification, DuplicatePolicy, JobState, NodeFields
from linkverify.contracts.errors import ConfigurationError, EngineExecutionError
from linkverify.core.logging import get_logger
from linkverify.core.store import NodeStore
from linkverify.engine.aggregation import ReduceOutput, reduce_partition
from linkverify.engine.counters import CounterSet
from linkverify.engine.expansion import MapOutput, TaskCancelled, expand_split
from linkverify.engine.output import PartWriter, mark_success, prepare_output_dir
from linkverify.engine.retry import MaxRetriesExceeded, RetryConfig, RetryManager, is_retryable
from linkverify.engine.shuffle import Shuffle

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class JobConfig:
    """Everything a job needs, fixed at submission.

    flushed_entries is the broadcast form of the flushed filter ("tag:count"
    strings); an empty tuple means no filtering.
    """

    output_dir: Path
    num_partitions: int
    input_splits: int
    fields: NodeFields = NodeFields.ALL
    flushed_entries: tuple[str, ...] = ()
    map_workers: int = 4
    reduce_workers: int = 4
    retry: RetryConfig = field(default_factory=RetryConfig)
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.LENIENT
    speculative_execution: bool = False
    name: str = "Link Verifier"

    def __post_init__(self) -> None:
        if self.num_partitions < 1:
            raise ConfigurationError(f"num_partitions must be >= 1, got {self.num_partitions}")
        if self.input_splits < 1:
            raise ConfigurationError(f"input_splits must be >= 1, got {self.input_splits}")
        if self.map_workers < 1 or self.reduce_workers < 1:
            raise ConfigurationError("map_workers and reduce_workers must be >= 1")
        if self.speculative_execution:
            raise ConfigurationError("speculative execution would double-count assertions and cannot be enabled")
        if self.flushed_entries and self.fields != NodeFields.ALL:
            raise ConfigurationError("flushed filtering needs client and count, so fields must be NodeFields.ALL")


class _JobCancelled(Exception):
    pass


class MapReduceJob:
    """One verification computation over a NodeStore.

    The job takes ownership of the store and closes it when it finishes.
    """

    def __init__(self, config: JobConfig, store: NodeStore) -> None:
        self.config = config
        self._store = store
        self._counters = CounterSet()
        self._shuffle = Shuffle(config.num_partitions)
        self._retry = RetryManager(config.retry)
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._state_lock = threading.Lock()
        self._state = JobState.CREATED
        self._failure: EngineExecutionError | None = None
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> JobState:
        with self._state_lock:
            return self._state

    @property
    def failure(self) -> EngineExecutionError | None:
        """Why the job failed, if it did."""
        return self._failure

    def _set_state(self, state: JobState) -> None:
        with self._state_lock:
            self._state = state

    def submit(self) -> None:
        """Prepare the output directory and start the job in the background.

        Raises:
            ConfigurationError: If the output directory is unusable.
            RuntimeError: If the job was already submitted.
        """
        with self._state_lock:
            if self._state != JobState.CREATED:
                raise RuntimeError(f"job already submitted (state={self._state})")
            prepare_output_dir(self.config.output_dir)
            self._state = JobState.RUNNING
        self._thread = threading.Thread(target=self._run, name="linkverify-job", daemon=True)
        self._thread.start()

    def is_complete(self) -> bool:
        return self.state.is_terminal

    def is_successful(self) -> bool:
        return self.state == JobState.SUCCEEDED

    def wait_for_completion(self, timeout: float | None = None) -> bool:
        """Block until the job finishes (or timeout elapses). Returns success."""
        self._done.wait(timeout)
        return self.is_successful()

    def cancel(self) -> None:
        """Abort outstanding tasks. Counters of a cancelled job are discarded."""
        self._cancel.set()

    def counters(self) -> dict[Classification, int]:
        """Committed counters. A failed or cancelled job reads as all zeros."""
        return self._counters.snapshot()

    # === Execution ===

    def _run(self) -> None:
        log = logger.bind(job=self.config.name, output_dir=str(self.config.output_dir))
        try:
            self._run_map_phase()
            self._shuffle.seal()
            self._check_cancelled()
            self._run_reduce_phase()
            self._check_cancelled()
            mark_success(self.config.output_dir)
        except _JobCancelled:
            self._counters.discard()
            self._set_state(JobState.CANCELLED)
            log.warning("job_cancelled")
        except EngineExecutionError as e:
            self._counters.discard()
            self._failure = e
            self._set_state(JobState.FAILED)
            log.error("job_failed", error=str(e), task=e.task_id, attempts=e.attempts)
        except Exception as e:
            # Executor crash: record it as job failure rather than losing it on the worker thread
            self._counters.discard()
            self._failure = EngineExecutionError(f"job crashed: {type(e).__name__}: {e}")
            self._failure.__cause__ = e
            self._set_state(JobState.FAILED)
            log.exception("job_crashed")
        else:
            self._set_state(JobState.SUCCEEDED)
            log.info("job_completed", **{name.value: count for name, count in self.counters().items()})
        finally:
            self._store.close()
            self._done.set()

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise _JobCancelled()

    def _run_phase(self, phase: str, workers: int, task_ids: range, task_fn: Callable[[int], None]) -> None:
        """Run every task of a phase, stopping at the first failure."""
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"linkverify-{phase}") as pool:
            futures: list[Future[None]] = [pool.submit(task_fn, task_id) for task_id in task_ids]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [f for f in done if f.exception() is not None]
            if failed:
                # Tell the remaining tasks to stop at their next record boundary
                self._cancel.set()
                for future in futures:
                    future.cancel()
                errors = [f.exception() for f in failed]
                # A real failure outranks the cancellations it triggered in sibling tasks
                real = [e for e in errors if not isinstance(e, _JobCancelled)]
                if real:
                    raise real[0]  # type: ignore[misc]
                raise _JobCancelled()

    def _run_map_phase(self) -> None:
        self._run_phase("map", self.config.map_workers, range(self.config.input_splits), self._map_task)

    def _run_reduce_phase(self) -> None:
        self._run_phase("reduce", self.config.reduce_workers, range(self.config.num_partitions), self._reduce_task)

    def _map_task(self, split: int) -> None:
        task_id = f"map-{split:05d}"

        def attempt(number: int) -> MapOutput:
            self._check_cancelled()
            with closing(self._store.scan(split, self.config.input_splits, self.config.fields)) as nodes:
                return expand_split(
                    split,
                    nodes,
                    flushed_entries=self.config.flushed_entries,
                    shuffle=self._shuffle,
                    cancel=self._cancel,
                )

        output = self._attempt(task_id, attempt)
        committed = self._shuffle.commit(output.buckets)
        self._counters.merge(output.counters)
        logger.debug(
            "map_task_committed",
            task=task_id,
            nodes_read=output.nodes_read,
            assertions=committed,
            ignored=output.counters[Classification.IGNORED],
        )

    def _reduce_task(self, partition: int) -> None:
        task_id = f"reduce-{partition:05d}"

        def attempt(number: int) -> ReduceOutput:
            self._check_cancelled()
            with PartWriter(self.config.output_dir, partition=partition, attempt=number) as writer:
                output = reduce_partition(
                    partition,
                    self._shuffle.partition(partition),
                    writer,
                    duplicate_policy=self.config.duplicate_policy,
                    cancel=self._cancel,
                )
                writer.commit()
            return output

        output = self._attempt(task_id, attempt)
        self._counters.merge(output.counters)
        self._shuffle.release(partition)
        logger.debug("reduce_task_committed", task=task_id, keys=output.keys, undefined=output.diagnostics)

    def _attempt(self, task_id: str, operation: Callable[[int], T]) -> T:
        """Run a task under the retry policy, translating exhaustion into job failure."""

        def on_retry(attempt: int, error: BaseException) -> None:
            logger.warning("task_attempt_failed", task=task_id, attempt=attempt, error=str(error))

        try:
            return self._retry.execute_with_retry(operation, is_retryable=is_retryable, on_retry=on_retry)
        except TaskCancelled as e:
            raise _JobCancelled() from e
        except MaxRetriesExceeded as e:
            raise EngineExecutionError(
                f"{task_id} failed after {e.attempts} attempt(s): {e.last_error}",
                task_id=task_id,
                attempts=e.attempts,
            ) from e.last_error
        except _JobCancelled:
            raise
        except Exception as e:
            # Non-retryable errors fail the job on their first occurrence
            raise EngineExecutionError(f"{task_id} failed: {type(e).__name__}: {e}", task_id=task_id, attempts=1) from e
