"""Names of the buckets exchanged between migration stages."""

WIKI_PAGES = "wiki-pages"
PAGE_REVISIONS = "page-revisions"
ATTACHMENT_FILES = "attachment-files"
SAMENAME_ATTACHMENTS = "samename-attachments"
DIAGRAM_CONTENTS = "diagram-contents"
CUSTOMIZATIONS = "customizations"
REVISION_WIKITEXT = "revision-wikitext"

# Diagnostics
MISSING_TITLES = "missing-titles"
MISSING_ATTACHMENTS = "missing-attachments"
INVALID_LINKS = "invalid-links"
MISSING_REDIRECT_TARGETS = "missing-redirect-targets"
MISSING_FILES = "missing-files"

ANALYZE_BUCKETS = [
    WIKI_PAGES,
    PAGE_REVISIONS,
    ATTACHMENT_FILES,
    SAMENAME_ATTACHMENTS,
    DIAGRAM_CONTENTS,
    CUSTOMIZATIONS,
    MISSING_REDIRECT_TARGETS,
]

EXTRACT_BUCKETS = [ATTACHMENT_FILES, DIAGRAM_CONTENTS, MISSING_FILES]

CONVERT_BUCKETS = [
    WIKI_PAGES,
    PAGE_REVISIONS,
    ATTACHMENT_FILES,
    DIAGRAM_CONTENTS,
    CUSTOMIZATIONS,
    REVISION_WIKITEXT,
    MISSING_TITLES,
    MISSING_ATTACHMENTS,
    INVALID_LINKS,
]

COMPOSE_BUCKETS = [WIKI_PAGES, PAGE_REVISIONS, CUSTOMIZATIONS, REVISION_WIKITEXT]
