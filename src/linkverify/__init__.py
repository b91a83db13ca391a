"""
linkverify: Referential-integrity verification for very large linked lists.

Scans nodes written by a continuous-ingest generator, expands each into
existence and reference assertions, groups them by node id and reports
any id that is referenced but was never written.
"""

__version__ = "0.1.0"
