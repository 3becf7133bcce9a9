"""
Integration Tests for student logbook endpoints
Tests the create -> edit -> submit flow and the student-resource guard
"""
import pytest
from httpx import AsyncClient

from conftest import ENTRY_DAY, create_entry, headers_for, submitted_entry

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


class TestCreateEntry:

    @pytest.mark.asyncio
    async def test_create_draft(self, client: AsyncClient, student):
        response = await create_entry(client, student)

        assert response.status_code == 201
        entry = response.json()['entry']
        assert entry['studentId'] == student.id
        assert entry['date'] == ENTRY_DAY
        assert entry['submitted'] is False
        assert entry['state'] == 'Draft'
        assert entry['reviewStatus'] is None
        assert entry['imageUrl'] is None

    @pytest.mark.asyncio
    async def test_timestamp_date_keeps_calendar_day(self, client: AsyncClient, student):
        response = await create_entry(client, student, day='2024-01-10T09:30:00Z')

        assert response.status_code == 201
        assert response.json()['entry']['date'] == '2024-01-10'

    @pytest.mark.asyncio
    async def test_duplicate_date(self, client: AsyncClient, student):
        await create_entry(client, student)
        response = await create_entry(client, student, description='Second attempt at the same day')

        assert response.status_code == 409
        assert response.json() == {
            'error': 'Entry for this date already exists',
            'code': 'DUPLICATE_ENTRY_DATE',
        }

    @pytest.mark.asyncio
    async def test_invalid_date(self, client: AsyncClient, student):
        response = await create_entry(client, student, day='10/01/2024')

        assert response.status_code == 400
        assert response.json()['errors'][0]['field'] == 'date'

    @pytest.mark.asyncio
    async def test_short_description(self, client: AsyncClient, student):
        response = await create_entry(client, student, description='ok')

        assert response.status_code == 400
        body = response.json()
        assert body['code'] == 'VALIDATION_ERROR'
        assert body['errors'][0]['field'] == 'description'

    @pytest.mark.asyncio
    async def test_image_url_is_absolute(self, client: AsyncClient, student):
        response = await create_entry(client, student, files={'image': ('site.png', PNG_BYTES, 'image/png')})

        assert response.status_code == 201
        image_url = response.json()['entry']['imageUrl']
        assert image_url.startswith('http://test/uploads/logbook/')
        assert image_url.endswith('.png')

        served = await client.get(image_url.replace('http://test', ''))
        assert served.status_code == 200
        assert served.content == PNG_BYTES

    @pytest.mark.asyncio
    async def test_rejects_non_image_upload(self, client: AsyncClient, student):
        response = await create_entry(client, student, files={'image': ('notes.txt', b'hello', 'text/plain')})

        assert response.status_code == 400
        assert response.json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_requires_industry_supervisor(self, client: AsyncClient, unassigned_student):
        response = await create_entry(client, unassigned_student)

        assert response.status_code == 403
        body = response.json()
        assert body['code'] == 'INDUSTRY_SUPERVISOR_REQUIRED'
        assert 'message' in body

    @pytest.mark.asyncio
    async def test_cannot_write_to_another_students_logbook(self, client: AsyncClient, student, other_student):
        response = await client.post(
            f'/students/{other_student.id}/logbook',
            data={'date': ENTRY_DAY, 'description': 'Not my logbook at all'},
            headers=headers_for(student),
        )

        assert response.status_code == 403
        assert response.json()['code'] == 'FORBIDDEN'

    @pytest.mark.asyncio
    async def test_supervisor_cannot_create(self, client: AsyncClient, student, supervisor_headers):
        response = await client.post(
            f'/students/{student.id}/logbook',
            data={'date': ENTRY_DAY, 'description': 'Written by the supervisor'},
            headers=supervisor_headers,
        )

        assert response.status_code == 403
        assert response.json()['code'] == 'INSUFFICIENT_ROLE'

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient, student):
        response = await client.post(
            f'/students/{student.id}/logbook',
            data={'date': ENTRY_DAY, 'description': 'Anonymous entry text'},
        )

        assert response.status_code == 401
        assert response.json() == {'error': 'No token provided', 'code': 'UNAUTHORIZED'}

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient, student):
        response = await client.get(
            f'/students/{student.id}/logbook',
            headers={'Authorization': 'Bearer not-a-jwt'},
        )

        assert response.status_code == 401
        assert response.json()['error'] == 'Invalid or expired token'


class TestEditEntry:

    @pytest.mark.asyncio
    async def test_edit_draft(self, client: AsyncClient, student, student_headers):
        entry = (await create_entry(client, student)).json()['entry']

        response = await client.patch(
            f'/students/{student.id}/logbook/{entry["id"]}',
            data={'description': 'Replaced the faulty patch panel'},
            headers=student_headers,
        )

        assert response.status_code == 200
        edited = response.json()['entry']
        assert edited['description'] == 'Replaced the faulty patch panel'
        assert edited['date'] == entry['date']

    @pytest.mark.asyncio
    async def test_edit_without_fields(self, client: AsyncClient, student, student_headers):
        entry = (await create_entry(client, student)).json()['entry']

        response = await client.patch(f'/students/{student.id}/logbook/{entry["id"]}', headers=student_headers)

        assert response.status_code == 400
        assert response.json()['error'] == 'No fields to update'

    @pytest.mark.asyncio
    async def test_edit_after_submit(self, client: AsyncClient, student, student_headers):
        entry = await submitted_entry(client, student)

        response = await client.patch(
            f'/students/{student.id}/logbook/{entry["id"]}',
            data={'description': 'Trying to change history'},
            headers=student_headers,
        )

        assert response.status_code == 409
        assert response.json()['error'] == 'Cannot edit a submitted entry'

    @pytest.mark.asyncio
    async def test_edit_after_attendance(self, client: AsyncClient, student, student_headers, supervisor_headers):
        entry = (await create_entry(client, student)).json()['entry']
        marked = await client.post(
            '/attendance',
            json={'studentId': student.id, 'date': ENTRY_DAY, 'present': True},
            headers=supervisor_headers,
        )
        assert marked.status_code == 201

        response = await client.patch(
            f'/students/{student.id}/logbook/{entry["id"]}',
            data={'description': 'Edited after attendance'},
            headers=student_headers,
        )

        assert response.status_code == 409
        assert response.json() == {
            'error': 'Cannot edit logbook entry after attendance has been marked for this date.',
            'code': 'ATTENDANCE_MARKED',
        }

    @pytest.mark.asyncio
    async def test_edit_entry_through_another_path(self, client: AsyncClient, student, other_student):
        entry = (await create_entry(client, other_student)).json()['entry']

        response = await client.patch(
            f'/students/{student.id}/logbook/{entry["id"]}',
            data={'description': 'Hijacking this entry'},
            headers=headers_for(student),
        )

        assert response.status_code == 404
        assert response.json()['code'] == 'ENTRY_NOT_FOUND'


class TestSubmitEntry:

    @pytest.mark.asyncio
    async def test_submit(self, client: AsyncClient, student):
        entry = await submitted_entry(client, student)

        assert entry['submitted'] is True
        assert entry['state'] == 'Submitted'

    @pytest.mark.asyncio
    async def test_double_submit(self, client: AsyncClient, student, student_headers):
        entry = await submitted_entry(client, student)

        response = await client.patch(
            f'/students/{student.id}/logbook/{entry["id"]}/submit',
            headers=student_headers,
        )

        assert response.status_code == 409
        assert response.json()['error'] == 'Entry already submitted'

    @pytest.mark.asyncio
    async def test_submit_notifies_student_and_supervisors(
        self, client: AsyncClient, store, student, industry_supervisor, school_supervisor
    ):
        await submitted_entry(client, student)

        student_items, _ = store.list_notifications(student.id, False, 10, 0)
        assert [n.title for n in student_items] == ['Logbook Entry Submitted']
        for supervisor in (industry_supervisor, school_supervisor):
            items, _ = store.list_notifications(supervisor.id, False, 10, 0)
            assert [n.title for n in items] == ['Logbook Entry Awaiting Review']


class TestReadEntries:

    @pytest.mark.asyncio
    async def test_list_oldest_first(self, client: AsyncClient, student, student_headers):
        for day in ('2024-01-12', '2024-01-10', '2024-01-11'):
            await create_entry(client, student, day=day)

        response = await client.get(f'/students/{student.id}/logbook', headers=student_headers)

        assert response.status_code == 200
        assert [e['date'] for e in response.json()['entries']] == ['2024-01-10', '2024-01-11', '2024-01-12']

    @pytest.mark.asyncio
    async def test_recent_returns_latest_five(self, client: AsyncClient, student, student_headers):
        for day in range(1, 8):
            await create_entry(client, student, day=f'2024-03-0{day}')

        response = await client.get(f'/students/{student.id}/logbook/recent', headers=student_headers)

        dates = [e['date'] for e in response.json()['entries']]
        assert dates == ['2024-03-07', '2024-03-06', '2024-03-05', '2024-03-04', '2024-03-03']

    @pytest.mark.asyncio
    async def test_get_single_entry(self, client: AsyncClient, student, student_headers):
        entry = (await create_entry(client, student)).json()['entry']

        response = await client.get(f'/students/{student.id}/logbook/{entry["id"]}', headers=student_headers)

        assert response.status_code == 200
        assert response.json()['entry']['id'] == entry['id']

    @pytest.mark.asyncio
    async def test_student_cannot_read_other_student(self, client: AsyncClient, student, other_student):
        response = await client.get(f'/students/{other_student.id}/logbook', headers=headers_for(student))

        assert response.status_code == 403
        assert response.json()['error'] == "You do not have permission to access this student's data"

    @pytest.mark.asyncio
    async def test_assigned_supervisors_can_read(
        self, client: AsyncClient, student, supervisor_headers, school_supervisor_headers
    ):
        await create_entry(client, student)

        for headers in (supervisor_headers, school_supervisor_headers):
            response = await client.get(f'/students/{student.id}/logbook', headers=headers)
            assert response.status_code == 200
            assert len(response.json()['entries']) == 1

    @pytest.mark.asyncio
    async def test_unassigned_supervisor_is_rejected(self, client: AsyncClient, student, other_supervisor_headers):
        response = await client.get(f'/students/{student.id}/logbook', headers=other_supervisor_headers)

        assert response.status_code == 403
        assert response.json()['code'] == 'NOT_ASSIGNED'

    @pytest.mark.asyncio
    async def test_supervisor_unknown_student(self, client: AsyncClient, supervisor_headers):
        response = await client.get('/students/does-not-exist/logbook', headers=supervisor_headers)

        assert response.status_code == 404
        assert response.json()['error'] == 'Student not found'

    @pytest.mark.asyncio
    async def test_admin_reads_any_student(self, client: AsyncClient, other_student, admin_headers):
        await create_entry(client, other_student)

        response = await client.get(f'/students/{other_student.id}/logbook', headers=admin_headers)

        assert response.status_code == 200
        assert len(response.json()['entries']) == 1

    @pytest.mark.asyncio
    async def test_with_reviews_includes_reviewer(
        self, client: AsyncClient, student, industry_supervisor, student_headers, supervisor_headers
    ):
        entry = await submitted_entry(client, student)
        await create_entry(client, student, day='2024-01-11')
        await client.post(
            f'/logbook/review/{entry["id"]}',
            json={'reviewStatus': 'APPROVED'},
            headers=supervisor_headers,
        )

        response = await client.get(f'/students/{student.id}/logbook/with-reviews', headers=student_headers)

        entries = response.json()['entries']
        assert [e['date'] for e in entries] == ['2024-01-11', ENTRY_DAY]
        assert entries[0]['reviewer'] is None
        assert entries[1]['reviewer'] == {
            'id': industry_supervisor.id,
            'name': industry_supervisor.name,
            'email': industry_supervisor.email,
        }

    @pytest.mark.asyncio
    async def test_analytics(self, client: AsyncClient, student, student_headers, supervisor_headers):
        await submitted_entry(client, student)
        await create_entry(client, student, day='2024-01-11')
        for day, present in ((ENTRY_DAY, True), ('2024-01-11', False)):
            await client.post(
                '/attendance',
                json={'studentId': student.id, 'date': day, 'present': present},
                headers=supervisor_headers,
            )

        response = await client.get(f'/students/{student.id}/logbook/analytics', headers=student_headers)

        assert response.json() == {
            'totalEntries': 2,
            'totalSubmitted': 1,
            'totalPending': 1,
            'totalAttendance': 2,
            'totalDays': 2,
            'attendancePercentage': 50.0,
        }
