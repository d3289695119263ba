"""
Shared fixtures: an in-memory SQLite copy of the schema, fake object store and
mailer, and a TestClient wired to them through dependency overrides.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Column, Integer, MetaData, Table, Text, create_engine, insert
from sqlalchemy.pool import StaticPool

from landrecords.columns import PLOT_COLUMNS, PLOT_TABLE, PRIMARY_KEY
from landrecords.db import get_db, make_session_factory
from landrecords.errors import UpstreamFailure
from landrecords.mailer import get_mailer
from landrecords.main import app
from landrecords.models import Base
from landrecords.storage import get_store


class FakeObjectStore:
    """In-memory stand-in for the S3 bucket."""

    def __init__(self, keys=(), fail_listing=False, fail_signing=(), fail_lookup=()):
        self.keys = set(keys)
        self.fail_listing = fail_listing
        self.fail_signing = set(fail_signing)
        self.fail_lookup = set(fail_lookup)
        self.signed = []

    def list_objects(self, prefix):
        if self.fail_listing:
            raise UpstreamFailure("listing unavailable")
        return sorted(k for k in self.keys if k.startswith(prefix))

    def exists(self, key):
        if key in self.fail_lookup:
            raise UpstreamFailure("lookup unavailable")
        return key in self.keys

    def sign_url(self, key, ttl_seconds):
        if key in self.fail_signing:
            raise UpstreamFailure("signing unavailable")
        self.signed.append((key, ttl_seconds))
        return f"https://files.example/{key}?expires={ttl_seconds}"


class FakeMailer:
    def __init__(self, ok=True):
        self.ok = ok
        self.sent = []

    def send_mail(self, to, subject, body, html=None):
        self.sent.append({"to": to, "subject": subject, "body": body, "html": html})
        return (True, None) if self.ok else (False, "smtp unavailable")


# The service never creates all_data; tests build a text-typed copy of it.
plot_metadata = MetaData()
plot_records = Table(
    PLOT_TABLE,
    plot_metadata,
    Column(PRIMARY_KEY, Integer, primary_key=True, autoincrement=False),
    *[Column(name, Text, nullable=True) for name in PLOT_COLUMNS],
)


SAMPLE_PLOTS = [
    {"ID": 1, "NAME_OF_NODE": "Vashi", "SECTOR_NO_": "17", "BLOCK_ROAD_NAME": "A", "PLOT_NO_": "1",
     "PLOT_USE_FOR_INVOICE": "Residential", "Department_Remark": "Verified",
     "PLOT_AREA_FOR_INVOICE": "₹1,000.00", "Additional_Plot_Count": "2", "SUBMISSION": "SUBMISSION-I"},
    {"ID": 2, "NAME_OF_NODE": "Vashi", "SECTOR_NO_": "17", "BLOCK_ROAD_NAME": "B", "PLOT_NO_": "2",
     "PLOT_USE_FOR_INVOICE": "Commercial", "Department_Remark": None,
     "PLOT_AREA_FOR_INVOICE": "500", "Additional_Plot_Count": "", "SUBMISSION": None},
    {"ID": 3, "NAME_OF_NODE": "Vashi", "SECTOR_NO_": "9", "BLOCK_ROAD_NAME": "A", "PLOT_NO_": "7",
     "PLOT_USE_FOR_INVOICE": "Residential", "Department_Remark": "Verified",
     "PLOT_AREA_FOR_INVOICE": "1,500", "Additional_Plot_Count": "1", "SUBMISSION": ""},
    {"ID": 4, "NAME_OF_NODE": "Nerul", "SECTOR_NO_": "5", "BLOCK_ROAD_NAME": "C", "PLOT_NO_": "3",
     "PLOT_USE_FOR_INVOICE": None, "Department_Remark": "Pending",
     "PLOT_AREA_FOR_INVOICE": "2000 sqm", "Additional_Plot_Count": None, "SUBMISSION": None},
    {"ID": 5, "NAME_OF_NODE": "Nerul", "SECTOR_NO_": "5", "BLOCK_ROAD_NAME": "C", "PLOT_NO_": "4",
     "PLOT_USE_FOR_INVOICE": "Public", "Department_Remark": "Pending",
     "PLOT_AREA_FOR_INVOICE": "NA", "Additional_Plot_Count": "3", "SUBMISSION": None},
    {"ID": 6, "NAME_OF_NODE": None, "SECTOR_NO_": None, "BLOCK_ROAD_NAME": None, "PLOT_NO_": None,
     "PLOT_USE_FOR_INVOICE": "Residential", "Department_Remark": "",
     "PLOT_AREA_FOR_INVOICE": "0", "Additional_Plot_Count": "0", "SUBMISSION": None},
]


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    plot_metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_plots(engine):
    with engine.begin() as conn:
        conn.execute(insert(plot_records), SAMPLE_PLOTS)
    return SAMPLE_PLOTS


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(session_factory, store, mailer):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
