"""Configuration de test pour pytest.

Fixe l'environnement avant tout import de `backend` (base SQLite en mémoire, pas de broker,
pas de Cloudinary) et fournit les fixtures partagées: moteur SQL, utilisateurs, dispatcher
enregistreur, navigateur factice, stockage d'images en mémoire et client HTTP.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SCREENSHOT_DISPATCH"] = "off"
os.environ["JWT_SECRET"] = "test-secret-key-for-hs256-signing-0001"
os.environ["APP_ENV"] = "test"
os.environ.pop("CLOUDINARY_URL", None)
os.environ.pop("MAINTENANCE_MODE", None)

import pytest  # noqa: E402
import structlog  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from backend.api.deps import get_container, get_dispatcher  # noqa: E402
from backend.core.container import Container  # noqa: E402
from backend.core.settings import Settings  # noqa: E402
from backend.domain.auth import create_access_token  # noqa: E402
from backend.infra.assets.memory_store import InMemoryAssetStore  # noqa: E402
from backend.infra.repo.db import get_engine, session_scope  # noqa: E402
from backend.infra.repo.models import Base  # noqa: E402
from backend.infra.repo.user_repo import UserRepo  # noqa: E402
from tests.fakes import (  # noqa: E402
    BYPASS_SECRET,
    JWT_TEST_SECRET,
    FakeBrowser,
    RecordingDispatcher,
)


@pytest.fixture(autouse=True)
def _restore_structlog_config():
    """Restaure la configuration structlog: un test peut la lier à un flux capturé puis fermé."""
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)


@pytest.fixture
def engine():
    eng = get_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def make_user(engine):
    """Crée (ou retrouve) un utilisateur à partir de son sujet d'identité."""

    def _make(subject: str = "auth0|alice", email: str = "alice@example.com", name: str = "Alice"):
        with session_scope(engine) as session:
            return UserRepo(session).upsert(subject, email, name=name, picture="https://img/a.png")

    return _make


@pytest.fixture
def owner(make_user):
    return make_user()


@pytest.fixture
def stranger(make_user):
    return make_user("auth0|bob", "bob@example.com", "Bob")


@pytest.fixture
def recorder():
    return RecordingDispatcher()


@pytest.fixture
def asset_store():
    return InMemoryAssetStore()


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="sqlite+pysqlite:///:memory:",
        SCREENSHOT_DISPATCH="off",
        JWT_SECRET=JWT_TEST_SECRET,
        PREVIEW_BYPASS_SECRET=BYPASS_SECRET,
        APP_ENV="test",
    )


@pytest.fixture
def test_container(test_settings):
    return Container(test_settings)


@pytest.fixture
def client(test_container, recorder):
    """Client HTTP branché sur un conteneur de test et le dispatcher enregistreur."""
    from backend.app.main import app

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_dispatcher] = lambda: recorder
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """En-têtes Bearer signés avec le secret de test pour un sujet donné."""

    def _headers(subject: str = "auth0|alice", email: str = "alice@example.com") -> dict:
        token = create_access_token(
            secret=JWT_TEST_SECRET, alg="HS256", expires_min=30, payload={"sub": subject, "email": email}
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
