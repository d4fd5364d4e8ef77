import copy
import os
import sys
from pathlib import Path

import psycopg
import pytest
from pymongo.errors import DuplicateKeyError

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from climate_solutions import create_app  # noqa: E402
from climate_solutions.auth_service import AccountStore  # noqa: E402
from climate_solutions.catalog import Project, Sector  # noqa: E402
from climate_solutions.errors import NotFoundError, PersistenceError, ValidationError  # noqa: E402


# ---------------------------------------------------------------------------
# Fake MongoDB collection (only the calls AccountStore makes)
# ---------------------------------------------------------------------------

class FakeUsersCollection:
    def __init__(self):
        self.docs = []
        self.indexes = []
        # Set to an exception instance to make the next writes fail
        self.fail_with = None

    def _match(self, query):
        for doc in self.docs:
            if all(doc.get(k) == v for k, v in query.items()):
                return doc
        return None

    def create_index(self, key, unique=False):
        self.indexes.append((key, unique))
        return f"{key}_1"

    def insert_one(self, doc):
        if self.fail_with is not None:
            raise self.fail_with
        if self._match({"userName": doc["userName"]}) is not None:
            raise DuplicateKeyError("E11000 duplicate key error collection: users index: userName_1", 11000)
        self.docs.append(copy.deepcopy(doc))

    def find_one(self, query):
        doc = self._match(query)
        return copy.deepcopy(doc) if doc is not None else None

    def find_one_and_update(self, query, update, return_document=None):
        if self.fail_with is not None:
            raise self.fail_with
        doc = self._match(query)
        if doc is None:
            return None
        for key, value in update.get("$push", {}).items():
            doc.setdefault(key, []).append(copy.deepcopy(value))
        return copy.deepcopy(doc)

    def count_documents(self, query):
        return sum(1 for doc in self.docs if all(doc.get(k) == v for k, v in query.items()))


# ---------------------------------------------------------------------------
# Fake catalog store (same operations and errors as CatalogStore)
# ---------------------------------------------------------------------------

class FakeCatalogStore:
    def __init__(self, sectors=None, projects=None):
        self.sectors = list(sectors or [])
        self.projects = list(projects or [])
        self.calls = []
        # Set to a StoreError to make every write fail with it
        self.write_error = None

    @classmethod
    def with_sample_data(cls):
        energy = Sector(id=1, name="Energy")
        transport = Sector(id=2, name="Transportation")
        projects = [
            Project(1, "Solar Grid", "https://img.example/solar.jpg", "Sun power", "Intro",
                    "Big impact", "https://example.org/solar", 1, energy),
            Project(2, "Electric Buses", "https://img.example/bus.jpg", "Clean buses", "Intro",
                    "Less diesel", "https://example.org/bus", 2, transport),
        ]
        return cls(sectors=[energy, transport], projects=projects)

    def _sector(self, sector_id):
        return next((s for s in self.sectors if s.id == sector_id), None)

    def list_projects(self):
        self.calls.append(("list_projects",))
        if not self.projects:
            raise NotFoundError("No projects found")
        return list(self.projects)

    def list_projects_by_sector(self, fragment):
        self.calls.append(("list_projects_by_sector", fragment))
        found = [p for p in self.projects if p.sector and fragment.lower() in p.sector.name.lower()]
        if not found:
            raise NotFoundError("Unable to find requested projects")
        return found

    def get_project(self, project_id):
        self.calls.append(("get_project", project_id))
        for project in self.projects:
            if str(project.id) == str(project_id):
                return project
        raise NotFoundError("Unable to find requested project")

    def create_project(self, fields):
        self.calls.append(("create_project", dict(fields)))
        if self.write_error is not None:
            raise self.write_error
        if not fields.get("title"):
            raise ValidationError("Project title is required")
        sector_id = int(fields["sector_id"])
        new_id = max((p.id for p in self.projects), default=0) + 1
        self.projects.append(Project(
            new_id, fields["title"], fields.get("feature_img_url"), fields.get("summary_short"),
            fields.get("intro_short"), fields.get("impact"), fields.get("original_source_url"),
            sector_id, self._sector(sector_id),
        ))
        return new_id

    def update_project(self, project_id, fields):
        self.calls.append(("update_project", project_id, dict(fields)))
        if self.write_error is not None:
            raise self.write_error
        for project in self.projects:
            if str(project.id) == str(project_id):
                if "title" in fields:
                    project.title = fields["title"]

    def delete_project(self, project_id):
        self.calls.append(("delete_project", project_id))
        if self.write_error is not None:
            raise self.write_error
        self.projects = [p for p in self.projects if str(p.id) != str(project_id)]

    def list_sectors(self):
        self.calls.append(("list_sectors",))
        if not self.sectors:
            raise NotFoundError("No sectors found")
        return list(self.sectors)


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def users():
    return FakeUsersCollection()


@pytest.fixture()
def account_store(users):
    store = AccountStore(collection=users)
    store.initialize()
    return store


@pytest.fixture()
def catalog():
    return FakeCatalogStore.with_sample_data()


@pytest.fixture()
def app(account_store, catalog):
    return create_app(
        test_config={"TESTING": True, "SECRET_KEY": "test-secret"},
        deps={"account_store": account_store, "catalog_store": catalog},
    )


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def registered_user(account_store):
    account_store.register("alice", "s3cret-pass", "s3cret-pass", "alice@example.com")
    return {"userName": "alice", "password": "s3cret-pass", "email": "alice@example.com"}


@pytest.fixture()
def logged_in_client(client, registered_user):
    resp = client.post(
        "/login",
        data={"userName": registered_user["userName"], "password": registered_user["password"]},
        headers={"User-Agent": "pytest-browser/1.0"},
    )
    assert resp.status_code in (302, 303)
    return client


@pytest.fixture()
def failing_write(catalog):
    catalog.write_error = PersistenceError("Failed to add project")
    return catalog


# ---------------------------------------------------------------------------
# Real PostgreSQL (tests marked db)
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def database_url():
    url = os.environ.get("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL must be set for db tests")
    return url


@pytest.fixture()
def db_clean(database_url):
    """
    Drop the catalog tables before each db test so initialize() starts fresh.
    """
    with psycopg.connect(database_url) as conn:
        with conn.cursor() as cur:
            cur.execute("DROP TABLE IF EXISTS projects, sectors CASCADE;")
        conn.commit()
