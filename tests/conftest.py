import pytest
import os
import fakeredis
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

from app.core.redis import get_redis
from app.database import Base, get_db
from app.main import app
from fastapi.testclient import TestClient

PASSWORD = "Password123!"

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, join_transaction_mode="create_savepoint"
)

# pysqlite needs its own transaction handling switched off for SAVEPOINT to work
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None

@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")

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
    # Service commits and rollbacks only touch a SAVEPOINT inside the outer transaction
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def redis_client():
    """A private in-memory Redis per test."""
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    client.flushall()

@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory creating verified, active users with a known password."""
    from app.models.user import User, UserRole
    from app.services import auth as auth_service

    hashed = auth_service.get_password_hash(PASSWORD)

    def _make_user(email, role=UserRole.EMPLOYEE, first_name="Test", last_name="User", **fields):
        user = User(
            email=email,
            hashed_password=hashed,
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=fields.pop("is_active", True),
            is_email_verified=fields.pop("is_email_verified", True),
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user

@pytest.fixture(scope="function")
def manager(make_user):
    from app.models.user import UserRole
    return make_user("manager@example.com", role=UserRole.MANAGER, first_name="Maya", last_name="Manager")

@pytest.fixture(scope="function")
def employee(make_user, manager):
    from app.models.user import UserRole
    return make_user("employee@example.com", role=UserRole.EMPLOYEE, first_name="Eli", last_name="Employee",
                     approver_id=manager.id)

@pytest.fixture(scope="function")
def hr_user(make_user):
    from app.models.user import UserRole
    return make_user("hr@example.com", role=UserRole.HR, first_name="Hana", last_name="Resources")

@pytest.fixture(scope="function")
def client(db_session, redis_client):
    """Get a TestClient that uses the test database and Redis via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: redis_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture(scope="function")
def login(client):
    """Helper fixture returning auth headers for a freshly created session."""
    def _login(user, password=PASSWORD):
        response = client.post("/api/auth/login", json={"email": user.email, "password": password})
        assert response.status_code == 200, response.text
        # Header auth keeps users independent of the client's cookie jar
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['data']['sessionId']}"}
    return _login
