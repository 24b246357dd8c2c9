"""Data models for the analyzer.

This module defines the page, revision, attachment and diagram records that
the analyzer builds and the converter and composer consume. All models use
dataclasses and know how to round-trip through the JSON bucket store.
"""

import base64
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

NS_MAIN = 0
NS_FILE = 6

FILE_PREFIX = "File:"


class PageKind(str, Enum):
    """Origin of a page record."""
    NATIVE = "native"
    REDIRECT = "redirect"
    FILE = "file"
    DIAGRAM = "diagram"


def format_timestamp(value: Any) -> str:
    """Format a database timestamp as an ISO 8601 UTC string.

    Accepts datetime objects and the string forms returned by database
    drivers that do not parse timestamps (e.g. SQLite).
    """
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class Page:
    """A page of the migrated title space.

    Attributes:
        page_id: Native Redmine page id or a synthetic id
        wiki_id: Redmine wiki the page belongs to
        project_id: Redmine project owning the wiki
        title: Raw Redmine title (the filename for file pages)
        parent_id: Parent page id (None for a root page)
        content_id: Redmine wiki content id (None for synthetic pages)
        version: Current version number
        protected: Redmine protection flag
        namespace: Target namespace number
        kind: Origin of the page
        categories: Category names added by customization
        formatted_title: Unique hierarchical title in the target wiki
        redirects_to: Formatted title this page redirects to
        project_name: Name of the owning project
        project_identifier: Identifier of the owning project
    """
    page_id: int
    wiki_id: int
    project_id: int
    title: str
    parent_id: Optional[int] = None
    content_id: Optional[int] = None
    version: int = 0
    protected: bool = False
    namespace: int = NS_MAIN
    kind: PageKind = PageKind.NATIVE
    categories: List[str] = field(default_factory=list)
    formatted_title: str = ""
    redirects_to: Optional[str] = None
    project_name: str = ""
    project_identifier: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['kind'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Page":
        values = dict(data)
        values['kind'] = PageKind(values.get('kind', PageKind.NATIVE.value))
        return cls(**values)


@dataclass
class Revision:
    """One version of a page.

    Attributes:
        rev_id: Revision id (content version id or synthetic id)
        page_id: Owning page id
        version: Version ordinal, ascending per page
        parent_rev_id: Id of the preceding revision (None for the first)
        author_id: Redmine user id of the author
        author_name: Resolved author display name (None when unresolved)
        text: Revision body
        comments: Change comment
        updated_on: ISO 8601 timestamp
        needs_conversion: False for synthetic bodies that are already wikitext
    """
    rev_id: int
    page_id: int
    version: int
    parent_rev_id: Optional[int]
    author_id: Optional[int]
    author_name: Optional[str]
    text: str
    comments: str = ""
    updated_on: str = ""
    needs_conversion: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Revision":
        return cls(**data)


@dataclass
class AttachmentVersion:
    """Metadata of one version of an attachment."""
    version: int
    created_on: str
    updated_on: str
    summary: str
    author_id: Optional[int]
    filename: str
    target_filename: str
    source_path: str
    page_id: Optional[int]
    container_id: int
    container_type: str


@dataclass
class AttachmentFile:
    """Version history of one Redmine attachment.

    Attributes:
        attachment_id: Redmine attachment id
        versions: Attachment versions keyed by version number
    """
    attachment_id: int
    versions: Dict[int, AttachmentVersion] = field(default_factory=dict)

    @property
    def latest(self) -> AttachmentVersion:
        return self.versions[max(self.versions)]

    def to_dict(self) -> Dict[str, Any]:
        return {str(number): asdict(version) for number, version in self.versions.items()}

    @classmethod
    def from_dict(cls, attachment_id: int, data: Dict[str, Any]) -> "AttachmentFile":
        versions = {int(number): AttachmentVersion(**values) for number, values in data.items()}
        return cls(attachment_id=attachment_id, versions=versions)


@dataclass
class DiagramContent:
    """An embedded diagram with its PNG rendering.

    Attributes:
        diagram_id: Redmine diagram id
        title: Diagram title
        data_base64: PNG payload in its base64 transport encoding
        target_filename: Upload filename in the target wiki
        formatted_title: Title in the file namespace
    """
    diagram_id: int
    title: str
    data_base64: str
    target_filename: str
    formatted_title: str

    @property
    def payload(self) -> bytes:
        return base64.b64decode(self.data_base64)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiagramContent":
        return cls(**data)


@dataclass
class RedirectNote:
    """A redirect revision waiting for its target to be resolved.

    Attributes:
        redirect_id: Redmine redirect row id
        page_id: Page that received the redirect revision
        version: Version number of the redirect revision
        target_wiki_id: Wiki holding the redirect target
        target_title: Raw title of the redirect target
        synthetic: True when the page was created for the redirect
    """
    redirect_id: int
    page_id: int
    version: int
    target_wiki_id: int
    target_title: str
    synthetic: bool
