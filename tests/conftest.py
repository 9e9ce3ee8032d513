import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from educhain.auth.service import create_session
from educhain.config import Settings
from educhain.db.session import make_session_factory, init_db
from educhain.ledger.client import LedgerTimeout
from educhain.ledger.keys import Ed25519Keypair, transaction_digest
from educhain.main import create_app
from educhain.middleware.auth import COOKIE_NAME
from educhain.models.user import User, ROLE_ISSUER, ROLE_STUDENT
from educhain.utils.security import hash_password, sign_session_token

PLATFORM_KEY = Ed25519Keypair.generate()


class FakeLedger:
    def __init__(self):
        self.coins = [{"coinObjectId": "0xc01n", "balance": "1000000000"}]
        self.tx_bytes = b"educhain-test-transaction"
        self.effects_status = "success"
        self.execute_error = None
        self.transactions = {}
        self.calls = []

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    async def get_coins(self, owner, coin_type="0x2::sui::SUI"):
        self.calls.append(("get_coins", owner))
        return list(self.coins)

    async def move_call(self, **kwargs):
        self.calls.append(("move_call", kwargs))
        return self.tx_bytes

    async def execute_transaction(self, tx_bytes, signature):
        self.calls.append(("execute", signature))
        if self.execute_error:
            raise self.execute_error
        digest = transaction_digest(tx_bytes)
        tx = {"digest": digest, "effects": {"status": {"status": self.effects_status}}}
        self.transactions[digest] = tx
        return tx

    async def get_transaction(self, digest):
        self.calls.append(("get_transaction", digest))
        return self.transactions.get(digest)

    async def wait_for_transaction(self, digest, timeout, poll_interval=1.0):
        tx = await self.get_transaction(digest)
        if tx is None:
            raise LedgerTimeout(f"transaction {digest} not confirmed")
        return tx


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        app_env="test",
        secret_key="test-secret",
        upload_dir=str(tmp_path / "uploads"),
        sui_secret_key=PLATFORM_KEY.secret_key(),
        sui_package_id="0xpackage",
        sui_factory_id="0xfactory",
        funding_poll_interval=0,
        funding_poll_attempts=3,
        confirm_timeout=0,
        pending_timeout=600,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def app(settings, session_factory, ledger):
    return create_app(settings, session_factory=session_factory, ledger=ledger)


@pytest.fixture
def client(app):
    return TestClient(app)


def make_user(db, email, role=ROLE_STUDENT, password="secret1", full_name="Test User", institution_name=None):
    user = User(
        email=email,
        password_hash=hash_password(password) if password else "!",
        full_name=full_name,
        role=role,
        address=Ed25519Keypair.generate().secret_key(),
        institution_name=institution_name if role == ROLE_ISSUER else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login_as(client, db, user, settings):
    """Opens a session without going through the password check."""
    token = create_session(db, user, settings.session_ttl_hours)
    client.cookies.set(COOKIE_NAME, sign_session_token(token, settings.secret_key))
    return token
