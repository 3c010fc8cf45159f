"""
Result storage boundary modules.

Exports: ResultStore, S3ResultStore, PassthroughResultStore
"""

from .result_store import PassthroughResultStore, ResultStore, S3ResultStore

__all__ = ["ResultStore", "S3ResultStore", "PassthroughResultStore"]
