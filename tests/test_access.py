"""
Unit Tests for student-resource access control
Tests for: per-role policy, deny reasons, industry supervisor requirement
"""
from unittest.mock import MagicMock

import pytest

from siwes_portal.core.access import (
    AccessDecision,
    DenyReason,
    check_industry_supervisor_assigned,
    check_student_access,
)
from siwes_portal.core.exceptions import ForbiddenError, NotFoundError, ServerError
from siwes_portal.models import Role

from conftest import make_user


class TestCheckStudentAccess:

    def test_admin_always_allowed(self, store, admin):
        decision = check_student_access(Role.ADMIN, admin.id, 'no-such-student', store)
        assert decision == AccessDecision.allow()

    def test_student_own_records(self, store, student):
        assert check_student_access(Role.STUDENT, student.id, student.id, store).allowed

    def test_student_other_records(self, store, student, other_student):
        decision = check_student_access(Role.STUDENT, student.id, other_student.id, store)
        assert not decision.allowed
        assert decision.reason == DenyReason.FORBIDDEN

    def test_assigned_industry_supervisor(self, store, student, industry_supervisor):
        assert check_student_access(Role.INDUSTRY_SUPERVISOR, industry_supervisor.id, student.id, store).allowed

    def test_assigned_school_supervisor(self, store, student, school_supervisor):
        assert check_student_access(Role.SCHOOL_SUPERVISOR, school_supervisor.id, student.id, store).allowed

    def test_unassigned_supervisor(self, store, student, other_industry_supervisor):
        decision = check_student_access(Role.INDUSTRY_SUPERVISOR, other_industry_supervisor.id, student.id, store)
        assert decision.reason == DenyReason.NOT_ASSIGNED

    def test_supervisor_unknown_student(self, store, industry_supervisor):
        decision = check_student_access(Role.INDUSTRY_SUPERVISOR, industry_supervisor.id, 'missing', store)
        assert decision.reason == DenyReason.STUDENT_NOT_FOUND

    def test_empty_student_id(self, store, student):
        decision = check_student_access(Role.STUDENT, student.id, '', store)
        assert decision.reason == DenyReason.FORBIDDEN

    def test_assignment_change_is_seen_immediately(self, store, student, industry_supervisor, other_industry_supervisor):
        store.update_student_supervisors(student.id, other_industry_supervisor.id, None)

        assert not check_student_access(Role.INDUSTRY_SUPERVISOR, industry_supervisor.id, student.id, store).allowed
        assert check_student_access(Role.INDUSTRY_SUPERVISOR, other_industry_supervisor.id, student.id, store).allowed

    def test_store_failure_is_server_error(self):
        broken = MagicMock()
        broken.get_student.side_effect = RuntimeError('connection lost')

        with pytest.raises(ServerError) as exc:
            check_student_access(Role.SCHOOL_SUPERVISOR, 'sup', 'student', broken)
        assert exc.value.message == 'Server error checking permissions'


class TestAccessDecisionEnforce:

    def test_allow_is_noop(self):
        AccessDecision.allow().enforce()

    def test_not_found(self):
        with pytest.raises(NotFoundError) as exc:
            AccessDecision.deny(DenyReason.STUDENT_NOT_FOUND).enforce()
        assert exc.value.status_code == 404

    @pytest.mark.parametrize('reason', [DenyReason.NOT_ASSIGNED, DenyReason.FORBIDDEN])
    def test_forbidden(self, reason):
        with pytest.raises(ForbiddenError) as exc:
            AccessDecision.deny(reason).enforce()
        assert exc.value.code == reason.value


class TestIndustrySupervisorRequirement:

    def test_assigned_student_passes(self, store, student):
        check_industry_supervisor_assigned(Role.STUDENT, student.id, store)

    def test_unassigned_student(self, store, unassigned_student):
        with pytest.raises(ForbiddenError) as exc:
            check_industry_supervisor_assigned(Role.STUDENT, unassigned_student.id, store)
        assert exc.value.code == 'INDUSTRY_SUPERVISOR_REQUIRED'
        assert 'message' in exc.value.to_dict()

    def test_school_supervisor_only_is_not_enough(self, store, school_supervisor):
        pupil = make_user(store, Role.STUDENT, school_supervisor_id=school_supervisor.id)
        with pytest.raises(ForbiddenError):
            check_industry_supervisor_assigned(Role.STUDENT, pupil.id, store)

    def test_missing_student_record(self, store):
        with pytest.raises(NotFoundError) as exc:
            check_industry_supervisor_assigned(Role.STUDENT, 'missing', store)
        assert exc.value.message == 'Student record not found'

    @pytest.mark.parametrize('role', [Role.ADMIN, Role.INDUSTRY_SUPERVISOR, Role.SCHOOL_SUPERVISOR])
    def test_other_roles_pass_through(self, store, role):
        check_industry_supervisor_assigned(role, 'anyone', store)
