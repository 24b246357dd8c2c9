"""Named JSON buckets shared between migration stages.

This module provides the BucketStore class. A bucket is a nested key/value
map persisted as one JSON file in the workspace. Each stage loads the buckets
it needs once at start and saves them once at the end, so the store doubles
as a stage-by-stage checkpoint.
"""

import json
import logging
import os
from typing import Any, Dict, Iterable

from src.workspace.errors import BucketError

logger = logging.getLogger(__name__)


class BucketStore:
    """Loads, updates and saves a fixed set of named buckets.

    Keys are stored as strings because JSON object keys are strings; callers
    converting ids back to integers do so when they rebuild their records.

    File structure:
        <workspace>/buckets/
          wiki-pages.json
          page-revisions.json
          revision-wikitext.json

    Example:
        >>> store = BucketStore("workspace", ["wiki-pages", "page-revisions"])
        >>> store.load()
        >>> store.add("wiki-pages", 12, {"title": "Start"})
        >>> store.save()
    """

    BUCKET_DIR = "buckets"

    def __init__(self, workspace_dir: str, names: Iterable[str]):
        """Initialize the store.

        Args:
            workspace_dir: Workspace directory holding the buckets folder
            names: Names of the buckets this store manages
        """
        self.workspace_dir = os.path.abspath(workspace_dir)
        self.names = list(names)
        self._data: Dict[str, Dict[str, Any]] = {name: {} for name in self.names}

    @property
    def bucket_dir(self) -> str:
        return os.path.join(self.workspace_dir, self.BUCKET_DIR)

    def _bucket_path(self, name: str) -> str:
        return os.path.join(self.bucket_dir, f"{name}.json")

    def load(self) -> None:
        """Load every managed bucket from the workspace.

        Missing bucket files are treated as empty buckets.

        Raises:
            BucketError: If a bucket file exists but cannot be parsed
        """
        for name in self.names:
            path = self._bucket_path(name)
            if not os.path.exists(path):
                logger.debug(f"Bucket '{name}' not found, starting empty")
                self._data[name] = {}
                continue
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise BucketError(bucket_path=path, message=f"Failed to read bucket: {e}")
            if not isinstance(data, dict):
                raise BucketError(bucket_path=path, message="Bucket must contain a JSON object")
            self._data[name] = data
            logger.debug(f"Loaded bucket '{name}' with {len(data)} entries")

    def save(self) -> None:
        """Write every managed bucket to the workspace.

        Raises:
            BucketError: If the bucket directory or a bucket file cannot be written
        """
        try:
            os.makedirs(self.bucket_dir, exist_ok=True)
        except OSError as e:
            raise BucketError(bucket_path=self.bucket_dir, message=f"Failed to create directory: {e}")

        for name in self.names:
            path = self._bucket_path(name)
            try:
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(self._data[name], f, indent=1, ensure_ascii=False)
            except (OSError, TypeError, ValueError) as e:
                raise BucketError(bucket_path=path, message=f"Failed to write bucket: {e}")
            logger.debug(f"Saved bucket '{name}' with {len(self._data[name])} entries")

    def get(self, name: str) -> Dict[str, Any]:
        """Return the live data of a bucket."""
        return self._data[self._check(name)]

    def add(self, name: str, key: Any, value: Any, merge: bool = True) -> None:
        """Write one entry into a bucket.

        Args:
            name: Bucket name
            key: Entry key (stored as string)
            value: Entry value (must be JSON serializable)
            merge: Merge nested dictionaries into an existing entry instead of
                replacing it
        """
        bucket = self._data[self._check(name)]
        key = str(key)
        existing = bucket.get(key)
        if merge and isinstance(existing, dict) and isinstance(value, dict):
            bucket[key] = _deep_merge(existing, value)
        else:
            bucket[key] = value

    def overwrite(self, name: str, data: Dict[Any, Any]) -> None:
        """Replace the whole content of a bucket."""
        self._data[self._check(name)] = {str(key): value for key, value in data.items()}

    def _check(self, name: str) -> str:
        if name not in self._data:
            raise BucketError(
                bucket_path=self._bucket_path(name),
                message=f"Bucket '{name}' is not managed by this store",
            )
        return name


def _deep_merge(base: Dict[str, Any], update: Dict[Any, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        key = str(key)
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
