"""Output stages of the migration.

This package provides the extractor that copies attachment and diagram
payloads into the workspace and the composer that writes the XML dump.
"""

from .composer import OUTPUT_FILENAME, RESULT_DIR, DumpComposer
from .errors import ExportError
from .extractor import IMAGES_DIR, AttachmentExtractor, ExtractionSummary

__all__ = [
    'OUTPUT_FILENAME',
    'RESULT_DIR',
    'DumpComposer',
    'ExportError',
    'IMAGES_DIR',
    'AttachmentExtractor',
    'ExtractionSummary',
]
