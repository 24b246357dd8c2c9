"""Title space construction from the Redmine database.

This package loads pages and revisions, builds hierarchical titles,
synthesizes redirect and file pages, and reports statistics about the
analyzed data.
"""

from .analyzer import AnalysisResult, WikiAnalyzer
from .attachment_loader import AttachmentLoader, AttachmentResult
from .config_loader import CustomizationLoader, Customizations
from .errors import (
    AnalyzerError,
    ConfigError,
    IntegrityError,
    ParentCycleError,
    MissingParentError,
    RevisionChainError,
    DuplicateTitleError,
    IdRangeError,
)
from .models import (
    AttachmentFile,
    AttachmentVersion,
    DiagramContent,
    Page,
    PageKind,
    RedirectNote,
    Revision,
)
from .page_loader import LoadResult, PageLoader
from .redirect_synthesizer import RedirectResult, RedirectSynthesizer
from .statistics import MigrationStatistics, collect_statistics
from .title_builder import TitleBuilder

__all__ = [
    'AnalysisResult',
    'WikiAnalyzer',
    'AttachmentLoader',
    'AttachmentResult',
    'CustomizationLoader',
    'Customizations',
    'AnalyzerError',
    'ConfigError',
    'IntegrityError',
    'ParentCycleError',
    'MissingParentError',
    'RevisionChainError',
    'DuplicateTitleError',
    'IdRangeError',
    'AttachmentFile',
    'AttachmentVersion',
    'DiagramContent',
    'Page',
    'PageKind',
    'RedirectNote',
    'Revision',
    'LoadResult',
    'PageLoader',
    'RedirectResult',
    'RedirectSynthesizer',
    'MigrationStatistics',
    'collect_statistics',
    'TitleBuilder',
]
