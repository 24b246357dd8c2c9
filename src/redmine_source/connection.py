"""Read-only access to the Redmine database.

This module wraps a SQLAlchemy engine and exposes the handful of row-oriented
queries the analyzer needs. Every query returns plain dictionaries so that the
analyzer never depends on SQLAlchemy result objects.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import SourceDataError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class RedmineSource:
    """Queries wikis, pages, content versions, redirects, attachments,
    diagrams and users from a Redmine database.

    Content version rows are returned ordered by ascending version per page,
    attachment version rows ordered by attachment id then version.

    Example:
        >>> source = RedmineSource.from_url("sqlite:///redmine.db")
        >>> wikis = source.fetch_wikis()
        >>> pages = source.fetch_pages([w['wiki_id'] for w in wikis])
    """

    def __init__(self, engine: Engine):
        """Initialize the source with an existing engine.

        Args:
            engine: SQLAlchemy engine connected to the Redmine database
        """
        self._engine = engine

    @classmethod
    def from_url(cls, url: str) -> "RedmineSource":
        """Create a source from a SQLAlchemy database URL."""
        try:
            engine = create_engine(url)
        except (SQLAlchemyError, ImportError) as e:
            raise SourceDataError('connect', str(e))
        return cls(engine)

    def fetch_wikis(self, wiki_ids: Optional[Iterable[int]] = None) -> List[Row]:
        """Fetch active wikis joined with their project name and identifier."""
        sql = (
            "SELECT w.id AS wiki_id, w.project_id, p.name AS project_name, "
            "p.identifier AS project_identifier "
            "FROM wikis w INNER JOIN projects p ON p.id = w.project_id "
            "WHERE w.status = 1"
        )
        ids = list(wiki_ids or [])
        if ids:
            return self._query('wikis', sql + " AND w.id IN :ids ORDER BY w.id", ids=ids)
        return self._query('wikis', sql + " ORDER BY w.id")

    def fetch_pages(self, wiki_ids: Iterable[int]) -> List[Row]:
        """Fetch wiki pages joined with their current content row."""
        return self._query(
            'pages',
            "SELECT p.wiki_id, w.project_id, c.page_id, p.title, p.parent_id, "
            "c.id AS content_id, c.version, p.protected "
            "FROM wikis w "
            "INNER JOIN wiki_pages p ON w.id = p.wiki_id "
            "INNER JOIN wiki_contents c ON p.id = c.page_id "
            "WHERE w.status = 1 AND w.id IN :ids "
            "ORDER BY c.page_id",
            ids=list(wiki_ids),
        )

    def fetch_content_versions(self, page_ids: Iterable[int]) -> List[Row]:
        """Fetch every content version of the given pages, oldest first."""
        return self._query(
            'content_versions',
            "SELECT v.id AS rev_id, v.page_id, v.author_id, v.data, v.compression, "
            "v.comments, v.updated_on, v.version "
            "FROM wiki_content_versions v "
            "WHERE v.page_id IN :ids "
            "ORDER BY v.page_id, v.version",
            ids=list(page_ids),
        )

    def fetch_redirects(self, wiki_ids: Iterable[int]) -> List[Row]:
        """Fetch redirect rows of the given wikis."""
        return self._query(
            'redirects',
            "SELECT id, wiki_id, title, redirects_to, redirects_to_wiki_id, created_on "
            "FROM wiki_redirects "
            "WHERE wiki_id IN :ids "
            "ORDER BY id",
            ids=list(wiki_ids),
        )

    def fetch_attachment_versions(
        self,
        container_type: str,
        container_ids: Iterable[int]
    ) -> List[Row]:
        """Fetch attachment version history for attachments of one container type.

        Args:
            container_type: Redmine container type ('WikiPage' or 'WikiContentVersion')
            container_ids: Ids of the containers

        Returns:
            Attachment version rows with the owning container id
        """
        return self._query(
            f'attachments[{container_type}]',
            "SELECT av.attachment_id, av.version, av.created_on, av.updated_at, "
            "av.description, av.author_id, av.filename, av.disk_directory, "
            "av.disk_filename, a.container_id "
            "FROM attachments a "
            "INNER JOIN attachment_versions av ON a.id = av.attachment_id "
            "WHERE a.container_type = :container_type AND a.container_id IN :ids "
            "ORDER BY av.attachment_id, av.version",
            ids=list(container_ids),
            container_type=container_type,
        )

    def fetch_diagrams(self, diagram_ids: Iterable[int]) -> List[Row]:
        """Fetch embedded diagram rows by id."""
        return self._query(
            'diagrams',
            "SELECT id, title, xml_png FROM diagrams WHERE id IN :ids ORDER BY id",
            ids=list(diagram_ids),
        )

    def fetch_users(self) -> List[Row]:
        """Fetch user rows for author name resolution."""
        return self._query(
            'users',
            "SELECT id, login, firstname, lastname FROM users ORDER BY id",
        )

    def _query(self, name: str, sql: str, ids: Optional[List[int]] = None, **params) -> List[Row]:
        """Run a query and return rows as dictionaries.

        An ``ids`` list is bound as an expanding IN parameter; an empty list
        short-circuits to an empty result.

        Raises:
            SourceDataError: If the database rejects the query
        """
        statement = text(sql)
        if ids is not None:
            if not ids:
                logger.debug(f"Skipping query '{name}': no ids")
                return []
            statement = statement.bindparams(bindparam('ids', expanding=True))
            params['ids'] = ids

        logger.debug(f"Running source query '{name}'")
        try:
            with self._engine.connect() as connection:
                result = connection.execute(statement, params)
                rows = [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"Source query '{name}' failed: {e}")
            raise SourceDataError(name, str(e))

        logger.debug(f"Source query '{name}' returned {len(rows)} rows")
        return rows
