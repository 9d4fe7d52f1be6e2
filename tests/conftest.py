"""Pytest configuration and fixtures."""

import logging

import pytest
from fastapi.testclient import TestClient

from workflow_builder.config import IntegrationSettings, get_testing_config, reset_config
from workflow_builder.core.execution_engine import ExecutionEngine
from workflow_builder.core.logging import WorkflowContextFilter
from workflow_builder.core.node_executor import NodeExecutor
from workflow_builder.models.core import Connection, Node, NodeCategory
from workflow_builder.services.registry import ServiceRegistry
from workflow_builder.storage import database
from workflow_builder.storage.database import create_tables, get_database_engine, get_db, reset_database_engine

INTEGRATION_ENV_VARS = [
    "SMTP_USER", "SMTP_PASSWORD",
    "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_PHONE_NUMBER",
    "OPENWEATHER_API_KEY",
    "TWITTER_API_KEY", "TWITTER_API_SECRET", "TWITTER_ACCESS_TOKEN", "TWITTER_ACCESS_SECRET",
    "GITHUB_TOKEN",
]


def make_node(node_id, node_type, category=NodeCategory.ACTION, label=None, **config):
    """Build a node for engine tests."""
    return Node(
        id=node_id,
        category=category,
        node_type=node_type,
        label=label or node_id,
        config=config
    )


def make_connection(source, target, connection_id=None):
    return Connection(
        id=connection_id or f"{source}->{target}",
        source_node_id=source,
        target_node_id=target
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def test_db(database_url):
    """Create a temporary test database."""
    reset_database_engine()
    engine = get_database_engine(database_url, connect_args={"check_same_thread": False})
    create_tables(engine)

    yield engine

    reset_database_engine()


@pytest.fixture
def db_session(test_db):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def services():
    """Service registry with no credentials: every adapter simulates."""
    registry = ServiceRegistry(IntegrationSettings())
    yield registry
    registry.close()


@pytest.fixture
def node_executor(services):
    return NodeExecutor(services)


@pytest.fixture
def engine(node_executor):
    return ExecutionEngine(node_executor, node_delay=0)


@pytest.fixture
def client(test_db, database_url, monkeypatch):
    """Create a test client backed by the temporary database."""
    from workflow_builder.main import create_app

    for name in INTEGRATION_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()

    config = get_testing_config().model_copy(update={"database_url": database_url})
    app = create_app(config)

    def override_get_db():
        db = database.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_config()

    # drop the handlers installed by the app lifespan
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if any(isinstance(f, WorkflowContextFilter) for f in handler.filters):
            root_logger.removeHandler(handler)
