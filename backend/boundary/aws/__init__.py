"""
AWS boundary modules.

Exports: S3ResultClient
"""

from .s3_client import S3ResultClient

__all__ = ["S3ResultClient"]
