"""
Integration Tests for student-submitted industry supervisors
Tests for: CSV upload creating or linking a supervisor, already-assigned and
invalid uploads, status, CSV template
"""
import pytest
from httpx import AsyncClient

from siwes_portal.models import Role

from conftest import create_entry, headers_for, make_user


def supervisor_csv(*rows: str) -> dict:
    body = '\n'.join(('name,email,company,position',) + rows) + '\n'
    return {'file': ('supervisor.csv', body.encode(), 'text/csv')}


class TestUpload:

    @pytest.mark.asyncio
    async def test_creates_supervisor_and_unlocks_logbook(self, client: AsyncClient, store, unassigned_student):
        headers = headers_for(unassigned_student)

        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv('Engr Funmi Lawal,Funmi.Lawal@Example.com,Dangote Refinery,Site Lead'),
            headers=headers,
        )

        assert response.status_code == 200
        supervisor = response.json()['supervisor']
        assert supervisor['email'] == 'funmi.lawal@example.com'
        created = store.get_user(supervisor['id'])
        assert created.role == Role.INDUSTRY_SUPERVISOR
        assert store.get_student(unassigned_student.id).industry_supervisor_id == created.id

        assert (await create_entry(client, unassigned_student)).status_code == 201

    @pytest.mark.asyncio
    async def test_links_existing_supervisor(self, client: AsyncClient, store, unassigned_student,
                                             industry_supervisor):
        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv(f'Someone Else,{industry_supervisor.email},,'),
            headers=headers_for(unassigned_student),
        )

        assert response.json()['supervisor']['id'] == industry_supervisor.id
        assert response.json()['supervisor']['name'] == industry_supervisor.name
        assert len(store.users) == 2

    @pytest.mark.asyncio
    async def test_skips_invalid_rows(self, client: AsyncClient, store, unassigned_student):
        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv(',missing-name@example.com,,', 'Bad Email,not-an-email,,', 'Ada Obi,ada@example.com,,'),
            headers=headers_for(unassigned_student),
        )

        assert response.status_code == 200
        assert response.json()['supervisor']['email'] == 'ada@example.com'

    @pytest.mark.asyncio
    async def test_email_of_another_role_is_rejected(self, client: AsyncClient, store, unassigned_student,
                                                     school_supervisor):
        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv(f'Dr Someone,{school_supervisor.email},,'),
            headers=headers_for(unassigned_student),
        )

        assert response.status_code == 400
        assert store.get_student(unassigned_student.id).industry_supervisor_id is None

    @pytest.mark.asyncio
    async def test_already_assigned(self, client: AsyncClient, student, industry_supervisor, student_headers):
        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv('Ada Obi,ada@example.com,,'),
            headers=student_headers,
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'SUPERVISOR_ALREADY_ASSIGNED'

    @pytest.mark.asyncio
    async def test_no_valid_rows(self, client: AsyncClient, unassigned_student):
        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv('No Email,,,'),
            headers=headers_for(unassigned_student),
        )

        assert response.status_code == 400
        assert response.json()['code'] == 'INVALID_CSV'

    @pytest.mark.asyncio
    async def test_requires_csv_file(self, client: AsyncClient, unassigned_student):
        headers = headers_for(unassigned_student)

        missing = await client.post('/industry-supervisors/upload', headers=headers)
        wrong_type = await client.post(
            '/industry-supervisors/upload',
            files={'file': ('supervisor.txt', b'name,email\n', 'text/plain')},
            headers=headers,
        )

        assert missing.status_code == 400
        assert missing.json()['error'] == 'No CSV file provided'
        assert wrong_type.status_code == 400

    @pytest.mark.asyncio
    async def test_students_only(self, client: AsyncClient, supervisor_headers):
        response = await client.post(
            '/industry-supervisors/upload',
            files=supervisor_csv('Ada Obi,ada@example.com,,'),
            headers=supervisor_headers,
        )

        assert response.status_code == 403


class TestStatus:

    @pytest.mark.asyncio
    async def test_assigned(self, client: AsyncClient, student, industry_supervisor, student_headers):
        response = await client.get('/industry-supervisors/status', headers=student_headers)

        body = response.json()
        assert body['hasIndustrySupervisor'] is True
        assert body['supervisor']['id'] == industry_supervisor.id

    @pytest.mark.asyncio
    async def test_unassigned(self, client: AsyncClient, unassigned_student):
        response = await client.get('/industry-supervisors/status', headers=headers_for(unassigned_student))

        assert response.json() == {'hasIndustrySupervisor': False, 'supervisor': None}

    @pytest.mark.asyncio
    async def test_missing_student_record(self, client: AsyncClient, store):
        orphan = make_user(store, Role.STUDENT)
        del store.students[orphan.id]

        response = await client.get('/industry-supervisors/status', headers=headers_for(orphan))

        assert response.status_code == 404
        assert response.json()['code'] == 'STUDENT_NOT_FOUND'


class TestTemplate:

    @pytest.mark.asyncio
    async def test_template(self, client: AsyncClient, admin_headers):
        response = await client.get('/industry-supervisors/export-template', headers=admin_headers)

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        assert 'industry-supervisor-template.csv' in response.headers['content-disposition']
        assert response.text.splitlines()[0] == 'name,email,company,position'
