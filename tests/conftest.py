"""Pytest configuration and shared fixtures."""

import os
import tempfile
from dataclasses import dataclass
from typing import Generator

# Configure the service before any soulbound_ledger module reads its config
_test_data_dir = tempfile.mkdtemp(prefix="soulbound-ledger-tests-")
os.environ["SBT_DATA_DIR"] = _test_data_dir
os.environ["SBT_LOG_TO_FILE"] = "0"
os.environ["SBT_LOG_LEVEL"] = "WARNING"
os.environ["SBT_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SBT_ISSUER_ADDRESS"] = "0x1111111111111111111111111111111111111111"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from soulbound_ledger.db.database import (
    create_database_engine,
    create_session_factory,
    init_database,
)
from soulbound_ledger.domain.ledger import Ledger
from soulbound_ledger.store.host import LedgerHost

BASE_URI = "https://ipfs.io/ipfs/"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line(
        "markers", "integration: tests that exercise the database and host together"
    )


@dataclass(frozen=True)
class Accounts:
    """Well-known identities used across the tests."""

    issuer: str = "0x1111111111111111111111111111111111111111"
    alice: str = "0xa11ce00000000000000000000000000000000001"
    bob: str = "0xb0b0000000000000000000000000000000000002"
    carol: str = "0xca20100000000000000000000000000000000003"
    dave: str = "0xda7e000000000000000000000000000000000004"


@pytest.fixture
def accounts() -> Accounts:
    """Well-known identities; the issuer matches SBT_ISSUER_ADDRESS."""
    return Accounts()


@pytest.fixture
def ledger(accounts) -> Ledger:
    """A fresh ledger with the default base URI."""
    return Ledger(BASE_URI, accounts.issuer)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Session factory over a private in-memory SQLite database."""
    engine = create_database_engine("sqlite:///:memory:")
    init_database(engine)

    yield create_session_factory(engine)

    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    """A database session closed after the test."""
    session = session_factory()

    yield session

    session.close()


@pytest.fixture
def host(ledger, session_factory) -> LedgerHost:
    """A host over the fresh ledger and in-memory database."""
    return LedgerHost(ledger, session_factory)


@pytest.fixture
def client(host) -> Generator[TestClient, None, None]:
    """Create a test client with the ledger host dependency overridden."""
    from soulbound_ledger.main import app
    from soulbound_ledger.api.dependencies import get_host

    app.dependency_overrides[get_host] = lambda: host

    with TestClient(app) as test_client:
        yield test_client

    # Clear overrides to avoid affecting other tests
    app.dependency_overrides.clear()
