"""
Shared test fixtures for MerchOps engine tests

Provides database setup and client creation
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from merchops.main import app
from merchops.db.base import Base
from merchops.db.session import get_db


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite defers BEGIN on its own, which breaks SAVEPOINT; let SQLAlchemy
# emit BEGIN so import batches can roll back to their savepoint.
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    # Import all models to ensure they're registered with Base
    import merchops.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        drop_tables(engine)


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the startup hook would try the configured database
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_vendor(db_session):
    """Canonical vendor with a code and a merchandising team"""
    from merchops.models.vendor import Vendor

    vendor = Vendor(
        name="Harbor Home Textiles",
        vendor_code="HHT01",
        merchandiser="Dana Reyes",
        merchandising_manager="Sam Ortiz",
    )
    db_session.add(vendor)
    db_session.flush()
    return vendor
