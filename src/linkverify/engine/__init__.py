"""Verification engine: expansion, aggregation, shuffle and job orchestration."""

from linkverify.engine.aggregation import classify, format_diagnostic, reduce_partition
from linkverify.engine.counters import CounterSet
from linkverify.engine.expansion import expand, expand_split
from linkverify.engine.job import JobConfig, MapReduceJob
from linkverify.engine.shuffle import Shuffle, partition_for
from linkverify.engine.verifier import Verifier

__all__ = [
    "CounterSet",
    "JobConfig",
    "MapReduceJob",
    "Shuffle",
    "Verifier",
    "classify",
    "expand",
    "expand_split",
    "format_diagnostic",
    "partition_for",
    "reduce_partition",
]
