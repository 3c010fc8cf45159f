"""
Inference boundary modules.

Exports: ReplicateClient
"""

from .replicate_client import ReplicateClient

__all__ = ["ReplicateClient"]
