"""The extract stage.

Copies every attachment version from the Redmine files directory into the
workspace under its disambiguated target filename and writes the decoded
diagram images next to them. Files missing on disk are a data gap: they are
logged, recorded in the missing-files bucket and skipped.
"""

import binascii
import logging
import os
import shutil
from dataclasses import dataclass

from src.workspace import buckets
from src.workspace.bucket_store import BucketStore
from src.wiki_analyzer.analyzer import AnalysisResult

from .errors import ExportError

logger = logging.getLogger(__name__)

IMAGES_DIR = "images"


@dataclass
class ExtractionSummary:
    """Counts of an extract stage run."""
    copied: int = 0
    missing: int = 0
    diagrams: int = 0


class AttachmentExtractor:
    """Writes attachment and diagram payloads into the workspace.

    Example:
        >>> store = BucketStore("workspace", buckets.EXTRACT_BUCKETS)
        >>> store.load()
        >>> AttachmentExtractor(store, "/var/lib/redmine/files", "workspace").run()
    """

    def __init__(self, store: BucketStore, files_dir: str, workspace_dir: str):
        """Initialize the extractor.

        Args:
            store: Bucket store managing the extract buckets (already loaded)
            files_dir: Redmine files directory holding the attachments
            workspace_dir: Workspace directory receiving the images folder
        """
        self._store = store
        self._files_dir = os.path.abspath(files_dir)
        self.target_dir = os.path.join(os.path.abspath(workspace_dir), IMAGES_DIR)

    def run(self) -> ExtractionSummary:
        """Copy attachments and write diagrams.

        Raises:
            ExportError: If the target directory or a target file cannot be written
        """
        analysis = AnalysisResult.from_store(self._store)
        summary = ExtractionSummary()
        missing = {}

        try:
            os.makedirs(self.target_dir, exist_ok=True)
        except OSError as e:
            raise ExportError(self.target_dir, f"Failed to create directory: {e}")

        for attachment_id in sorted(analysis.attachments):
            attachment = analysis.attachments[attachment_id]
            for number in sorted(attachment.versions):
                version = attachment.versions[number]
                source = os.path.join(self._files_dir, version.source_path)
                if not os.path.isfile(source):
                    logger.warning(f"File not found: {source}")
                    missing[version.source_path] = attachment_id
                    summary.missing += 1
                    continue
                target = self._target_path(version.target_filename)
                try:
                    shutil.copyfile(source, target)
                except OSError as e:
                    raise ExportError(target, f"Failed to copy {source}: {e}")
                summary.copied += 1

        for diagram_id in sorted(analysis.diagrams):
            diagram = analysis.diagrams[diagram_id]
            try:
                payload = diagram.payload
            except (binascii.Error, ValueError) as e:
                logger.warning(f"Diagram {diagram_id} has an invalid payload: {e}")
                continue
            target = self._target_path(diagram.target_filename)
            try:
                with open(target, "wb") as f:
                    f.write(payload)
            except OSError as e:
                raise ExportError(target, f"Failed to write diagram: {e}")
            summary.diagrams += 1

        self._store.overwrite(buckets.MISSING_FILES, missing)
        logger.info(
            f"Extracted {summary.copied} attachment files and {summary.diagrams} diagrams, "
            f"{summary.missing} files missing"
        )
        return summary

    def _target_path(self, filename: str) -> str:
        if not filename or os.path.basename(filename) != filename:
            raise ExportError(filename, "Target filename must not contain path separators")
        return os.path.join(self.target_dir, filename)
