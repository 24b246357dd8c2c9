"""In-memory Redmine database for analyzer and pipeline tests.

Provides a SQLite database with the subset of the Redmine schema that the
source queries read, plus helpers that insert projects, wikis, pages with
their version history, redirects, attachments, diagrams and users.
"""

from typing import Any, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from src.redmine_source.connection import RedmineSource

SCHEMA = [
    "CREATE TABLE projects (id INTEGER PRIMARY KEY, name TEXT, identifier TEXT)",
    "CREATE TABLE wikis (id INTEGER PRIMARY KEY, project_id INTEGER, status INTEGER DEFAULT 1)",
    "CREATE TABLE wiki_pages (id INTEGER PRIMARY KEY, wiki_id INTEGER, title TEXT, "
    "parent_id INTEGER, protected INTEGER DEFAULT 0)",
    "CREATE TABLE wiki_contents (id INTEGER PRIMARY KEY, page_id INTEGER, version INTEGER)",
    "CREATE TABLE wiki_content_versions (id INTEGER PRIMARY KEY, page_id INTEGER, "
    "author_id INTEGER, data TEXT, compression TEXT DEFAULT '', comments TEXT, "
    "updated_on TEXT, version INTEGER)",
    "CREATE TABLE wiki_redirects (id INTEGER PRIMARY KEY, wiki_id INTEGER, title TEXT, "
    "redirects_to TEXT, redirects_to_wiki_id INTEGER, created_on TEXT)",
    "CREATE TABLE attachments (id INTEGER PRIMARY KEY, container_id INTEGER, container_type TEXT)",
    "CREATE TABLE attachment_versions (id INTEGER PRIMARY KEY, attachment_id INTEGER, "
    "version INTEGER, created_on TEXT, updated_at TEXT, description TEXT, author_id INTEGER, "
    "filename TEXT, disk_directory TEXT, disk_filename TEXT)",
    "CREATE TABLE diagrams (id INTEGER PRIMARY KEY, title TEXT, xml_png TEXT)",
    "CREATE TABLE users (id INTEGER PRIMARY KEY, login TEXT, firstname TEXT, lastname TEXT)",
]

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class RedmineDatabase:
    """Builder for a throwaway Redmine database.

    Example:
        >>> db = RedmineDatabase()
        >>> db.add_project(7, "Operations", "ops")
        >>> db.add_wiki(1, project_id=7)
        >>> db.add_page(10, wiki_id=1, title="Start", bodies=["<p>Hello</p>"])
        >>> source = db.source()
    """

    def __init__(self):
        self.engine: Engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        with self.engine.begin() as connection:
            for statement in SCHEMA:
                connection.execute(text(statement))

    def source(self) -> RedmineSource:
        return RedmineSource(self.engine)

    def insert(self, table: str, **values: Any) -> None:
        columns = ", ".join(values)
        params = ", ".join(f":{name}" for name in values)
        with self.engine.begin() as connection:
            connection.execute(text(f"INSERT INTO {table} ({columns}) VALUES ({params})"), values)

    def add_user(self, user_id: int, login: str) -> None:
        self.insert("users", id=user_id, login=login, firstname=login, lastname="")

    def add_project(self, project_id: int, name: str, identifier: str) -> None:
        self.insert("projects", id=project_id, name=name, identifier=identifier)

    def add_wiki(self, wiki_id: int, project_id: int, status: int = 1) -> None:
        self.insert("wikis", id=wiki_id, project_id=project_id, status=status)

    def add_page(
        self,
        page_id: int,
        wiki_id: int,
        title: str,
        bodies: List[str],
        parent_id: Optional[int] = None,
        author_id: Optional[int] = 1
    ) -> List[int]:
        """Insert a page with one content version per body.

        Content version ids are ``page_id * 100 + version``.

        Returns:
            The content version ids, oldest first
        """
        self.insert("wiki_pages", id=page_id, wiki_id=wiki_id, title=title, parent_id=parent_id)
        self.insert("wiki_contents", id=page_id, page_id=page_id, version=len(bodies))
        rev_ids = []
        for number, body in enumerate(bodies, start=1):
            rev_id = page_id * 100 + number
            self.insert(
                "wiki_content_versions",
                id=rev_id,
                page_id=page_id,
                author_id=author_id,
                data=body,
                compression="",
                comments=f"Edit {number}",
                updated_on=f"2021-03-{number:02d} 10:00:00",
                version=number,
            )
            rev_ids.append(rev_id)
        return rev_ids

    def add_redirect(
        self,
        redirect_id: int,
        wiki_id: int,
        title: str,
        redirects_to: str,
        redirects_to_wiki_id: Optional[int] = None
    ) -> None:
        self.insert(
            "wiki_redirects",
            id=redirect_id,
            wiki_id=wiki_id,
            title=title,
            redirects_to=redirects_to,
            redirects_to_wiki_id=redirects_to_wiki_id,
            created_on="2022-01-15 08:30:00",
        )

    def add_attachment(
        self,
        attachment_id: int,
        page_id: int,
        filename: str,
        container_type: str = "WikiPage",
        versions: int = 1,
        author_id: int = 1
    ) -> None:
        """Insert an attachment with the given number of versions."""
        self.insert(
            "attachments", id=attachment_id, container_id=page_id, container_type=container_type
        )
        for number in range(1, versions + 1):
            self.insert(
                "attachment_versions",
                id=attachment_id * 100 + number,
                attachment_id=attachment_id,
                version=number,
                created_on="2021-04-01 09:00:00",
                updated_at="2021-04-02 09:00:00",
                description=f"{filename} v{number}",
                author_id=author_id,
                filename=filename,
                disk_directory="2021/04",
                disk_filename=f"{attachment_id}_{number}_{filename}",
            )

    def add_diagram(self, diagram_id: int, title: str, payload: str = PNG_BASE64) -> None:
        self.insert(
            "diagrams", id=diagram_id, title=title, xml_png=f"data:image/png;base64,{payload}"
        )


def build_sample_database() -> RedmineDatabase:
    """A small Redmine with two projects, a page tree, a redirect and attachments.

    Layout:
        project 7 "Operations" (ops), wiki 1
            A (10)
              B (11)
            Links (12), two versions both linking to a missing page
        project 8 "Handbook" (handbook), wiki 2
            A (20)
        redirect 1 in wiki 1: "Old" -> "A"
        attachments 501 and 502 both named logo.png (pages 10 and 20)
    """
    db = RedmineDatabase()
    db.add_user(1, "ALICE")
    db.add_project(7, "Operations", "ops")
    db.add_project(8, "Handbook", "handbook")
    db.add_wiki(1, project_id=7)
    db.add_wiki(2, project_id=8)

    db.add_page(10, wiki_id=1, title="A", bodies=["<p>Root of ops</p>", "<p>Root of ops v2</p>"])
    db.add_page(11, wiki_id=1, title="B", bodies=["<p>Child page</p>"], parent_id=10)
    db.add_page(
        12,
        wiki_id=1,
        title="Links",
        bodies=["<p>See [[NonExistentPage]]</p>", "<p>See [[NonExistentPage]] and [[B]]</p>"],
    )
    db.add_page(20, wiki_id=2, title="A", bodies=["<p>Root of handbook</p>"])

    db.add_redirect(1, wiki_id=1, title="Old", redirects_to="A")

    db.add_attachment(501, page_id=10, filename="logo.png")
    db.add_attachment(502, page_id=20, filename="logo.png")
    return db
