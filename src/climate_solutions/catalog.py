"""
climate_solutions/catalog.py

Catalog store: climate-solution projects and their sectors in PostgreSQL.

Responsibilities:
- Open a bounded psycopg connection pool and create the schema
- Seed the reference sectors/projects outside production when empty
- Project CRUD, sector listing and sector-name lookup

Listing operations treat an empty result as NotFoundError; routes decide
whether that renders as an empty page or an error page.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import psycopg
from psycopg import errors as pg_errors
from psycopg_pool import ConnectionPool

from climate_solutions.errors import (
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"

SCHEMA_SQL = (
    """
    CREATE TABLE IF NOT EXISTS sectors (
        id SERIAL PRIMARY KEY,
        sector_name VARCHAR(255) NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id SERIAL PRIMARY KEY,
        title VARCHAR(255) NOT NULL,
        feature_img_url VARCHAR(255),
        summary_short TEXT,
        intro_short TEXT,
        impact TEXT,
        original_source_url VARCHAR(255),
        sector_id INTEGER NOT NULL REFERENCES sectors(id)
    );
    """,
)

# Editable columns, in the order used by INSERT statements
PROJECT_FIELDS = (
    "title",
    "feature_img_url",
    "summary_short",
    "intro_short",
    "impact",
    "original_source_url",
    "sector_id",
)

PROJECT_SELECT = """
    SELECT p.id, p.title, p.feature_img_url, p.summary_short, p.intro_short,
           p.impact, p.original_source_url, p.sector_id, s.id, s.sector_name
    FROM projects p
    LEFT JOIN sectors s ON s.id = p.sector_id
"""


@dataclass
class Sector:
    id: int
    name: str


@dataclass
class Project:
    id: int
    title: str
    feature_img_url: Optional[str]
    summary_short: Optional[str]
    intro_short: Optional[str]
    impact: Optional[str]
    original_source_url: Optional[str]
    sector_id: Optional[int]
    sector: Optional[Sector] = None


def _project_from_row(row: tuple) -> Project:
    sector = Sector(id=row[8], name=row[9]) if row[8] is not None else None
    return Project(
        id=row[0],
        title=row[1],
        feature_img_url=row[2],
        summary_short=row[3],
        intro_short=row[4],
        impact=row[5],
        original_source_url=row[6],
        sector_id=row[7],
        sector=sector,
    )


def _as_id(value: Any) -> Optional[int]:
    """Parse a path/form id; None when it cannot be an integer key."""
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _escape_like(fragment: str) -> str:
    return fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _clean_fields(fields: Mapping[str, Any], *, partial: bool = False) -> dict:
    """
    Keep only editable project columns and check the ones the schema needs.

    Raises ValidationError with the first problem found.
    """
    values = {name: fields[name] for name in PROJECT_FIELDS if name in fields}

    for name, value in list(values.items()):
        if isinstance(value, str):
            values[name] = value.strip()

    if not partial or "title" in values:
        if not values.get("title"):
            raise ValidationError("Project title is required")

    if not partial or "sector_id" in values:
        sector_id = _as_id(values.get("sector_id"))
        if sector_id is None:
            raise ValidationError("A sector must be selected for the project")
        values["sector_id"] = sector_id

    return values


def _constraint_message(exc: psycopg.Error) -> str:
    """First field-level message for a constraint/data violation."""
    if isinstance(exc, pg_errors.ForeignKeyViolation):
        return "The selected sector does not exist"
    diag = getattr(exc, "diag", None)
    primary = diag.message_primary if diag is not None else None
    return primary or str(exc) or "Invalid project data"


def load_fixture(name: str, data_dir: Optional[Path] = None) -> list[dict]:
    path = (data_dir or DATA_DIR) / name
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


class CatalogStore:
    """
    Projects and sectors in PostgreSQL.

    Construct with a connection URL and call initialize() once at startup.
    Tests may pass an already opened pool (anything with a
    ``connection()`` context manager).
    """

    def __init__(self, database_url: Optional[str] = None, *,
                 pool: Any = None,
                 production: bool = False,
                 min_size: int = 1,
                 max_size: int = 10,
                 max_idle: float = 300.0,
                 connect_timeout: float = 10.0,
                 data_dir: Optional[Path] = None):
        self._url = database_url
        self._pool = pool
        self._owns_pool = pool is None
        self._production = production
        self._min_size = min_size
        self._max_size = max_size
        self._max_idle = max_idle
        self._connect_timeout = connect_timeout
        self._data_dir = data_dir
        self._ready = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Open the pool, synchronize the schema and seed reference data.

        Raises:
            StoreConnectionError: database unreachable or schema setup failed.
        """
        if self._pool is None:
            if not self._url:
                raise StoreConnectionError("No catalog database URL configured")
            pool = ConnectionPool(
                self._url,
                min_size=self._min_size,
                max_size=self._max_size,
                max_idle=self._max_idle,
                open=False,
                name="catalog",
            )
            try:
                pool.open(wait=True, timeout=self._connect_timeout)
            except psycopg.OperationalError as exc:
                pool.close()
                logger.error("Unable to connect to the catalog database: %s", exc)
                raise StoreConnectionError(f"Unable to connect to the catalog database: {exc}") from exc
            self._pool = pool

        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cursor:
                    for ddl in SCHEMA_SQL:
                        cursor.execute(ddl)
                    if not self._production:
                        self._seed_if_empty(cursor)
        except psycopg.Error as exc:
            logger.error("Catalog schema setup failed: %s", exc)
            raise StoreConnectionError(f"Unable to prepare the catalog database: {exc}") from exc

        self._ready = True
        logger.info("Catalog database ready")

    def _seed_if_empty(self, cursor) -> None:
        cursor.execute("SELECT COUNT(*) FROM sectors;")
        row = cursor.fetchone()
        if row and row[0]:
            return

        sectors = load_fixture("sectorData.json", self._data_dir)
        projects = load_fixture("projectData.json", self._data_dir)

        cursor.executemany(
            "INSERT INTO sectors (id, sector_name) VALUES (%(id)s, %(sector_name)s);",
            sectors,
        )
        cursor.executemany(
            """
            INSERT INTO projects (id, title, feature_img_url, summary_short, intro_short,
                                  impact, original_source_url, sector_id)
            VALUES (%(id)s, %(title)s, %(feature_img_url)s, %(summary_short)s, %(intro_short)s,
                    %(impact)s, %(original_source_url)s, %(sector_id)s);
            """,
            projects,
        )
        # explicit ids were inserted, so move the serial sequences past them
        cursor.execute("SELECT setval(pg_get_serial_sequence('sectors', 'id'), (SELECT MAX(id) FROM sectors));")
        cursor.execute("SELECT setval(pg_get_serial_sequence('projects', 'id'), (SELECT MAX(id) FROM projects));")
        logger.info("Seeded catalog with %d sectors and %d projects", len(sectors), len(projects))

    def close(self) -> None:
        if self._pool is not None and self._owns_pool:
            self._pool.close()
            self._pool = None
        self._ready = False

    def _connection(self):
        if self._pool is None or not self._ready:
            raise StoreConnectionError("Catalog store has not been initialized")
        return self._pool.connection()

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def _fetch_all(self, sql: str, params: Optional[Any] = None) -> list[tuple]:
        try:
            with self._connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(sql, params)
                    return cursor.fetchall()
        except psycopg.Error as exc:
            logger.warning("Catalog query failed: %s", exc)
            raise PersistenceError(f"Unable to read the catalog: {exc}") from exc

    def _write(self, sql: str, params: Any, failure_message: str, *, returning: bool = False):
        try:
            with self._connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(sql, params)
                    if returning:
                        row = cursor.fetchone()
                        return row[0] if row else None
                    return cursor.rowcount
        except (psycopg.IntegrityError, psycopg.DataError) as exc:
            raise ValidationError(_constraint_message(exc)) from exc
        except psycopg.Error as exc:
            logger.warning("%s: %s", failure_message, exc)
            raise PersistenceError(failure_message) from exc

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def list_projects(self) -> list[Project]:
        rows = self._fetch_all(PROJECT_SELECT + " ORDER BY p.id;")
        if not rows:
            raise NotFoundError("No projects found")
        return [_project_from_row(row) for row in rows]

    def list_projects_by_sector(self, sector_fragment: str) -> list[Project]:
        """Projects whose sector name contains the fragment, ignoring case."""
        pattern = f"%{_escape_like(sector_fragment or '')}%"
        rows = self._fetch_all(
            PROJECT_SELECT + " WHERE s.sector_name ILIKE %s ORDER BY p.id;",
            (pattern,),
        )
        if not rows:
            raise NotFoundError("Unable to find requested projects")
        return [_project_from_row(row) for row in rows]

    def get_project(self, project_id: Any) -> Project:
        pk = _as_id(project_id)
        if pk is None:
            raise NotFoundError("Unable to find requested project")
        rows = self._fetch_all(PROJECT_SELECT + " WHERE p.id = %s;", (pk,))
        if not rows:
            raise NotFoundError("Unable to find requested project")
        return _project_from_row(rows[0])

    def create_project(self, fields: Mapping[str, Any]) -> int:
        """Insert a project and return its new id."""
        values = _clean_fields(fields)
        columns = [name for name in PROJECT_FIELDS if name in values]
        sql = (
            f"INSERT INTO projects ({', '.join(columns)}) "
            f"VALUES ({', '.join(['%s'] * len(columns))}) RETURNING id;"
        )
        new_id = self._write(sql, [values[c] for c in columns], "Failed to add project", returning=True)
        logger.info("Created project %s", new_id)
        return new_id

    def update_project(self, project_id: Any, fields: Mapping[str, Any]) -> None:
        """Update the given columns; an unknown id changes nothing."""
        values = _clean_fields(fields, partial=True)
        pk = _as_id(project_id)
        if pk is None or not values:
            logger.info("Update of project %r skipped (no matching id or no fields)", project_id)
            return
        columns = [name for name in PROJECT_FIELDS if name in values]
        assignments = ", ".join(f"{c} = %s" for c in columns)
        count = self._write(
            f"UPDATE projects SET {assignments} WHERE id = %s;",
            [values[c] for c in columns] + [pk],
            "Failed to update project",
        )
        logger.info("Updated project %s (%s row(s))", pk, count)

    def delete_project(self, project_id: Any) -> None:
        """Delete by id; an unknown id is not an error."""
        pk = _as_id(project_id)
        if pk is None:
            logger.info("Delete of project %r skipped (not an id)", project_id)
            return
        count = self._write("DELETE FROM projects WHERE id = %s;", (pk,), "Failed to delete project")
        logger.info("Deleted project %s (%s row(s))", pk, count)

    # ------------------------------------------------------------------
    # Sectors
    # ------------------------------------------------------------------

    def list_sectors(self) -> list[Sector]:
        rows = self._fetch_all("SELECT id, sector_name FROM sectors ORDER BY id;")
        if not rows:
            raise NotFoundError("No sectors found")
        return [Sector(id=row[0], name=row[1]) for row in rows]
