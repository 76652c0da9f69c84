import os

os.environ.setdefault("SCOOTCARE_BACKEND", "memory")

import pytest

from scootcare import rate_limit
from scootcare.models import KnowledgeEntry, EntryKind, User, UserRole
from scootcare.seed import seed_backend
from scootcare.services import build_services
from scootcare.storage import InMemoryBackend


@pytest.fixture(autouse=True)
def reset_rate_limit():
    rate_limit.reset()
    yield
    rate_limit.reset()


@pytest.fixture
def backend():
    return seed_backend(InMemoryBackend())


@pytest.fixture
def services(backend):
    return build_services(backend)


@pytest.fixture
def alex():
    return User(id="user-alex", phone="+15550100001", role=UserRole.CUSTOMER)


@pytest.fixture
def sam():
    return User(id="user-sam", phone="+15550100002", role=UserRole.CUSTOMER)


@pytest.fixture
def admin():
    return User(id="user-admin", phone="+15550100099", role=UserRole.ADMIN)


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient
    from scootcare.server import create_app
    return TestClient(create_app(services))


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def static_entry(pattern, body):
    return KnowledgeEntry(question_pattern=pattern, kind=EntryKind.STATIC, body=body)


def dynamic_entry(pattern, key):
    return KnowledgeEntry(question_pattern=pattern, kind=EntryKind.DYNAMIC, resolver_key=key)
