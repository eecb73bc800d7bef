import pytest
import os
import tempfile
from datetime import datetime
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="clinreview-uploads-"))

from clinreview.database import Base, get_db
from clinreview.main import app
from clinreview.models.kpi import KPI
from clinreview.models.position import Position, Role
from clinreview.models.profile import StaffProfile
from clinreview.models.review_item import ReviewItem
from clinreview.services.entity_store import EntityStore
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs explicit BEGIN for SAVEPOINT to nest inside the per-test transaction
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    # commits and rollbacks inside a test only touch a savepoint
    session = TestingSessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def positions(db_session):
    """One position per role."""
    created = {
        Role.CLINICIAN: Position(position_title="Registered Nurse", role=Role.CLINICIAN),
        Role.DIRECTOR: Position(position_title="Director of Nursing", role=Role.DIRECTOR),
        Role.SUPER_ADMIN: Position(position_title="Administrator", role=Role.SUPER_ADMIN),
    }
    db_session.add_all(created.values())
    db_session.commit()
    return created


@pytest.fixture(scope="function")
def make_profile(db_session, positions):
    """Factory for staff profiles; approved clinicians unless told otherwise."""
    counter = {"n": 0}

    def _make_profile(name=None, role=Role.CLINICIAN, accept=True):
        counter["n"] += 1
        profile = StaffProfile(
            name=name or f"Staff {counter['n']}",
            username=f"staff{counter['n']}@example.com",
            position_id=positions[role].id if role is not None else None,
            accept=accept,
        )
        db_session.add(profile)
        db_session.commit()
        return profile
    return _make_profile


@pytest.fixture(scope="function")
def make_kpi(db_session):
    def _make_kpi(title="Patient Satisfaction", weight=5, floor="1st Floor", is_removed=False):
        kpi = KPI(title=title, description=f"{title} target", weight=weight, floor=floor, is_removed=is_removed)
        db_session.add(kpi)
        db_session.commit()
        return kpi
    return _make_kpi


@pytest.fixture(scope="function")
def make_review(db_session):
    """Insert a review item directly, bypassing reconciliation."""
    def _make_review(staff, kpi, met, date, director=None, file_url=None):
        item = ReviewItem(
            staff_id=staff.id,
            kpi_id=kpi.id,
            director_id=director.id if director else None,
            met_check=met,
            notes=None if met else "Missed target",
            plan=None if met else "Weekly follow-up",
            score=kpi.weight if met else 0,
            date=date,
            file_url=file_url,
        )
        db_session.add(item)
        db_session.commit()
        return item
    return _make_review


@pytest.fixture(scope="function")
def store(db_session):
    """Entity store loaded from the test session."""
    entity_store = EntityStore()
    entity_store.refresh_all(db_session)
    return entity_store


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def past_week_date():
    """A moment safely inside an already-started week of last year."""
    return datetime(datetime.now().year - 1, 3, 15, 10, 0, 0)
