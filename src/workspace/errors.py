"""Typed exception hierarchy for workspace errors.

This module defines the exceptions raised by the bucket store. All exceptions
inherit from MigrationError and carry the path of the offending bucket file.
"""

from src.redmine_source.errors import MigrationError


class BucketError(MigrationError):
    """Raised when a bucket file cannot be read, parsed or written.

    Attributes:
        bucket_path: Path to the bucket file
        message: Error description
    """

    def __init__(self, bucket_path: str, message: str):
        super().__init__(f"Bucket error at {bucket_path}: {message}")
        self.bucket_path = bucket_path
        self.message = message
