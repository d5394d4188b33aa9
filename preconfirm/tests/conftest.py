"""Shared fixtures for the preconfirm test suite"""

import pytest

from preconfirm.services.config import Settings
from preconfirm.services.database import create_engine_instance, get_session_maker, init_database
from preconfirm.services.schemas import DecisionRequest


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        sql_echo=False,
        upload_folder=str(tmp_path / "uploads"),
        high_value_threshold=10000.0,
        home_country="GB",
        anomaly_threshold=0.8,
        max_upload_bytes=1024,
        log_level="INFO",
    )


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine_instance("sqlite://")
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_maker(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def build_request(**overrides) -> DecisionRequest:
    """Low-risk domestic payment, with top-level fields overridden"""
    data = {
        "paymentId": "pay_001",
        "userId": "user_maker",
        "amount": {"currency": "GBP", "value": 50},
        "destination": {"country": "GB"},
        "payee": {"id": "payee_001", "isNew": False},
        "cop": None,
        "context": {},
        "answers": {},
    }
    data.update(overrides)
    return DecisionRequest.model_validate(data)


@pytest.fixture
def make_request():
    return build_request
