"""Workspace persistence for the migration stages.

This package provides the bucket store used to hand intermediate results
from one migration stage to the next, and the names of those buckets.
"""

from . import buckets
from .bucket_store import BucketStore
from .errors import BucketError

__all__ = ['BucketStore', 'BucketError', 'buckets']
