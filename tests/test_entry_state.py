"""
Unit Tests for the logbook entry state machine
Tests for: ownership, edit/submit/review guards
"""
from datetime import date, datetime, timezone

import pytest

from siwes_portal.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from siwes_portal.models import EntryState, LogbookEntry, ReviewStatus, Student
from siwes_portal.services.entry_state import (
    ensure_editable,
    ensure_owned,
    ensure_reviewable,
    ensure_submittable,
)


def draft(**kwargs) -> LogbookEntry:
    return LogbookEntry(student_id='student-1', date=date(2024, 1, 10), description='Did things', **kwargs)


def submitted() -> LogbookEntry:
    return draft(submitted=True)


def reviewed() -> LogbookEntry:
    return draft(
        submitted=True,
        review_status=ReviewStatus.APPROVED,
        reviewed_by='sup-1',
        reviewed_at=datetime.now(timezone.utc),
    )


class TestEntryState:

    def test_states(self):
        assert draft().state == EntryState.DRAFT
        assert submitted().state == EntryState.SUBMITTED
        assert reviewed().state == EntryState.REVIEWED


class TestEnsureOwned:

    def test_missing_entry(self):
        with pytest.raises(NotFoundError) as exc:
            ensure_owned(None, 'student-1')
        assert exc.value.code == 'ENTRY_NOT_FOUND'

    def test_entry_of_another_student_is_not_found(self):
        with pytest.raises(NotFoundError):
            ensure_owned(draft(), 'student-2')

    def test_returns_entry(self):
        entry = draft()
        assert ensure_owned(entry, 'student-1') is entry


class TestEnsureEditable:

    def test_draft_is_editable(self):
        ensure_editable(draft(), attendance_marked=False)

    def test_submitted_entry(self):
        with pytest.raises(ConflictError) as exc:
            ensure_editable(submitted(), attendance_marked=False)
        assert exc.value.code == 'ENTRY_SUBMITTED'
        assert exc.value.message == 'Cannot edit a submitted entry'

    def test_reviewed_entry(self):
        with pytest.raises(ConflictError) as exc:
            ensure_editable(reviewed(), attendance_marked=False)
        assert exc.value.code == 'ENTRY_REVIEWED'

    def test_attendance_freezes_draft(self):
        with pytest.raises(ConflictError) as exc:
            ensure_editable(draft(), attendance_marked=True)
        assert exc.value.code == 'ATTENDANCE_MARKED'
        assert exc.value.status_code == 409


class TestEnsureSubmittable:

    def test_draft(self):
        ensure_submittable(draft())

    @pytest.mark.parametrize('entry', [submitted(), reviewed()])
    def test_not_draft(self, entry):
        with pytest.raises(ConflictError) as exc:
            ensure_submittable(entry)
        assert exc.value.code == 'ALREADY_SUBMITTED'


class TestEnsureReviewable:

    student = Student(id='student-1', industry_supervisor_id='sup-1', school_supervisor_id='school-1')

    def test_assigned_supervisor_on_submitted_entry(self):
        ensure_reviewable(submitted(), self.student, 'sup-1')

    def test_other_supervisor(self):
        with pytest.raises(ForbiddenError) as exc:
            ensure_reviewable(submitted(), self.student, 'sup-2')
        assert exc.value.code == 'NOT_ASSIGNED_SUPERVISOR'

    def test_school_supervisor_cannot_review(self):
        with pytest.raises(ForbiddenError):
            ensure_reviewable(submitted(), self.student, 'school-1')

    def test_missing_student(self):
        with pytest.raises(ForbiddenError):
            ensure_reviewable(submitted(), None, 'sup-1')

    def test_draft_cannot_be_reviewed(self):
        with pytest.raises(ConflictError) as exc:
            ensure_reviewable(draft(), self.student, 'sup-1')
        assert exc.value.code == 'NOT_SUBMITTED'

    def test_second_review(self):
        with pytest.raises(ConflictError) as exc:
            ensure_reviewable(reviewed(), self.student, 'sup-1')
        assert exc.value.code == 'ALREADY_REVIEWED'
