"""
SIWES Portal - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import AsyncGenerator, Optional

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient

# Set testing environment
os.environ['STORAGE_BACKEND'] = 'memory'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['UPLOAD_DIR'] = tempfile.mkdtemp(prefix='siwes-uploads-')
os.environ['LOG_LEVEL'] = 'WARNING'

from siwes_portal.main import app
from siwes_portal.core.auth import create_access_token, hash_password
from siwes_portal.db import InMemoryStore, get_store
from siwes_portal.models import Role, Student, User

fake = Faker()

ENTRY_DAY = '2024-01-10'


def make_user(store: InMemoryStore, role: Role, password: Optional[str] = None, name: Optional[str] = None,
              **student_fields) -> User:
    """Store a user directly; students also get their Student record."""
    user = User(
        email=fake.unique.email(),
        name=name or fake.name(),
        role=role,
        password_hash=hash_password(password) if password else '',
    )
    student = None
    if role == Role.STUDENT:
        student = Student(id=user.id, matric_number=fake.bothify('SIW/####/###'), **student_fields)
    return store.create_user(user, student)


def headers_for(user: User) -> dict:
    token = create_access_token({'sub': user.id, 'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory store for each test"""
    return InMemoryStore()


@pytest.fixture
async def client(store: InMemoryStore) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with the store override"""
    app.dependency_overrides[get_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def industry_supervisor(store) -> User:
    return make_user(store, Role.INDUSTRY_SUPERVISOR)


@pytest.fixture
def other_industry_supervisor(store) -> User:
    return make_user(store, Role.INDUSTRY_SUPERVISOR)


@pytest.fixture
def school_supervisor(store) -> User:
    return make_user(store, Role.SCHOOL_SUPERVISOR)


@pytest.fixture
def admin(store) -> User:
    return make_user(store, Role.ADMIN)


@pytest.fixture
def student(store, industry_supervisor, school_supervisor) -> User:
    """Student with both supervisors assigned"""
    return make_user(
        store,
        Role.STUDENT,
        industry_supervisor_id=industry_supervisor.id,
        school_supervisor_id=school_supervisor.id,
    )


@pytest.fixture
def other_student(store, other_industry_supervisor) -> User:
    return make_user(store, Role.STUDENT, industry_supervisor_id=other_industry_supervisor.id)


@pytest.fixture
def unassigned_student(store) -> User:
    """Student without an industry supervisor"""
    return make_user(store, Role.STUDENT)


@pytest.fixture
def student_headers(student) -> dict:
    return headers_for(student)


@pytest.fixture
def supervisor_headers(industry_supervisor) -> dict:
    return headers_for(industry_supervisor)


@pytest.fixture
def other_supervisor_headers(other_industry_supervisor) -> dict:
    return headers_for(other_industry_supervisor)


@pytest.fixture
def school_supervisor_headers(school_supervisor) -> dict:
    return headers_for(school_supervisor)


@pytest.fixture
def admin_headers(admin) -> dict:
    return headers_for(admin)


async def create_entry(client: AsyncClient, student: User, day: str = ENTRY_DAY,
                       description: str = 'Configured the staging network switches', **kwargs):
    return await client.post(
        f'/students/{student.id}/logbook',
        data={'date': day, 'description': description},
        headers=headers_for(student),
        **kwargs,
    )


async def submitted_entry(client: AsyncClient, student: User, day: str = ENTRY_DAY) -> dict:
    """Create and submit an entry; returns the submitted entry JSON"""
    created = await create_entry(client, student, day)
    assert created.status_code == 201
    entry_id = created.json()['entry']['id']
    response = await client.patch(
        f'/students/{student.id}/logbook/{entry_id}/submit',
        headers=headers_for(student),
    )
    assert response.status_code == 200
    return response.json()['entry']
