import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from email_otp.database import Base, init_db
from email_otp.main import app
from email_otp.routers.otp import get_otp_service
from email_otp.services.otp import OtpService
from email_otp.services.record_store import InMemoryOtpRecordStore, SqlOtpRecordStore
from tests.factories import OTP_SIZE, VALIDITY_MINUTES, FakeClock, start_time

# -----------------------------------------
# TEST DATABASE
# -----------------------------------------
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def clock():
    return FakeClock(start_time())


@pytest.fixture
def engine():
    test_engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )


@pytest.fixture
def sql_store(session_factory):
    return SqlOtpRecordStore(session_factory)


@pytest.fixture
def memory_store():
    return InMemoryOtpRecordStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    # Runs the same scenario against both store implementations.
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def service(store, clock):
    return OtpService(
        store, otp_size=OTP_SIZE, validity_period_minutes=VALIDITY_MINUTES, clock=clock
    )


# -----------------------------------------
# Test Client
# -----------------------------------------
@pytest.fixture
def api_service(memory_store, clock):
    return OtpService(
        memory_store,
        otp_size=OTP_SIZE,
        validity_period_minutes=VALIDITY_MINUTES,
        clock=clock,
    )


@pytest.fixture
def client(api_service):
    app.dependency_overrides[get_otp_service] = lambda: api_service
    yield TestClient(app)
    app.dependency_overrides.pop(get_otp_service, None)
