"""Shared fixtures: a fresh SQLite registry per test with the cast of accounts."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FILE", "")

from typing import List  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from app.core.config import BuyerAssignmentPolicy  # noqa: E402
from app.core.dependencies import get_dispatcher  # noqa: E402
from app.db.core import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.notification import NotificationRead  # noqa: E402
from app.models.product import ProductCreate  # noqa: E402
from app.db.schema import Role  # noqa: E402
from app.services.auth import TokenService  # noqa: E402
from app.services.notification import NotificationDispatcher  # noqa: E402
from app.services.ownership import OwnershipGuard  # noqa: E402
from app.services.product import ProductLedger  # noqa: E402
from app.services.role import RoleRegistry  # noqa: E402
from app.services.transition import TransitionEngine  # noqa: E402

ADMIN = "0xA11CE00000000000000000000000000000000001"
PRODUCER = "0xB0B0000000000000000000000000000000000002"
TRANSPORTER = "0xCA55000000000000000000000000000000000003"
BUYER = "0xD00D000000000000000000000000000000000004"
OTHER_BUYER = "0xE1E1000000000000000000000000000000000005"
STRANGER = "0xF00F000000000000000000000000000000000006"


class RecordingSink:
    """Keeps every delivered notification in order."""

    def __init__(self):
        self.events: List[NotificationRead] = []

    def deliver(self, event: NotificationRead) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [e.event_type.value for e in self.events]


class Registry:
    """The four components wired to one session, as a request would see them."""

    def __init__(self, session: Session, dispatcher: NotificationDispatcher,
                 policy: BuyerAssignmentPolicy = BuyerAssignmentPolicy.SELF_SERVICE):
        self.session = session
        self.guard = OwnershipGuard(session, dispatcher)
        self.roles = RoleRegistry(session, self.guard, dispatcher)
        self.ledger = ProductLedger(session, self.roles, self.guard, dispatcher, policy=policy)
        self.transitions = TransitionEngine(session, self.ledger, self.roles)


@pytest.fixture
def db_engine(tmp_path):
    # File-backed so that several threads can hold their own connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'registry.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def dispatcher(db_engine, sink) -> NotificationDispatcher:
    return NotificationDispatcher(db_engine, sinks=[sink])


@pytest.fixture
def session(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def make_registry(db_engine, dispatcher):
    """Builds a Registry on its own session; sessions are closed after the test."""
    sessions = []

    def _make(policy: BuyerAssignmentPolicy = BuyerAssignmentPolicy.SELF_SERVICE) -> Registry:
        session = Session(db_engine)
        sessions.append(session)
        return Registry(session, dispatcher, policy)

    yield _make

    for session in sessions:
        session.close()


@pytest.fixture
def registry(session, dispatcher) -> Registry:
    registry = Registry(session, dispatcher)
    registry.guard.bootstrap(ADMIN)
    return registry


@pytest.fixture
def cast(registry) -> Registry:
    """Registry with a producer, a transporter and two buyers in place."""
    registry.roles.assign_role(ADMIN, PRODUCER, Role.PRODUCER, "Acme Farms")
    registry.roles.assign_role(ADMIN, TRANSPORTER, Role.TRANSPORTER, "Fast Freight")
    registry.roles.register_as_buyer(BUYER, "Corner Shop")
    registry.roles.register_as_buyer(OTHER_BUYER, "Rival Shop")
    return registry


@pytest.fixture
def widget(cast):
    """Product 1 'Widget', freshly produced."""
    return cast.ledger.create_product(PRODUCER, ProductCreate(id=1, name="Widget"))


@pytest.fixture
def client(db_engine, dispatcher):
    def _get_session():
        with Session(db_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    with Session(db_engine) as session:
        OwnershipGuard(session).bootstrap(ADMIN)

    yield TestClient(app)

    app.dependency_overrides.clear()


def auth(account: str) -> dict:
    token = TokenService().create_access_token(account)
    return {"Authorization": f"Bearer {token}"}
