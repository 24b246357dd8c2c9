"""Content conversion from Redmine HTML to target wikitext.

This package provides the pandoc runner, the per-revision conversion
pipeline with its link resolution engine, and the convert stage that runs
the pipeline over every revision in the workspace.
"""

from .diagnostics import ConversionDiagnostics
from .errors import ConversionError
from .link_resolver import LinkResolver
from .pandoc_runner import MANUAL_REVIEW_MARKER, PandocRunner
from .revision_converter import RevisionConverter
from .title_lookup import TitleSpace
from .wiki_converter import ConversionSummary, WikiConverter

__all__ = [
    'ConversionDiagnostics',
    'ConversionError',
    'LinkResolver',
    'MANUAL_REVIEW_MARKER',
    'PandocRunner',
    'RevisionConverter',
    'TitleSpace',
    'ConversionSummary',
    'WikiConverter',
]
