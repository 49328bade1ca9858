import pytest

from complaint_portal.db.models import ComplaintStatus, StudentStatus
from complaint_portal.schemas.registry_schemas import CreateCategoryRequest
from complaint_portal.services.category_service import CategoryService
from complaint_portal.services.student_service import StudentService
from complaint_portal.utils.errors import (
    AuthorizationError,
    ConflictError,
    ValidationFailedError,
)


def _error_code(response) -> str:
    return response.json()["meta"]["error_code"]


def test_complaint_owner_cannot_change(pending_complaint, other_student_user):
    with pytest.raises(ValueError):
        pending_complaint.student_id = other_student_user.student.id


class TestStudentService:
    @pytest.mark.asyncio
    async def test_admin_sees_only_students_with_complaints_in_scope(
        self, db_session, caller_for, admin_user, pending_complaint, other_student_user
    ):
        students = await StudentService(db_session).list_students(
            caller_for(admin_user)
        )

        assert [s.name for s in students] == ["Sam Student"]
        assert students[0].total_complaints == 1
        assert students[0].complaints[0].status == ComplaintStatus.PENDING

    @pytest.mark.asyncio
    async def test_super_admin_sees_whole_organization(
        self,
        db_session,
        caller_for,
        super_admin_user,
        student_user,
        other_student_user,
        foreign_student_user,
    ):
        students = await StudentService(db_session).list_students(
            caller_for(super_admin_user)
        )

        assert sorted(s.name for s in students) == ["Sam Student", "Tia Student"]

    @pytest.mark.asyncio
    async def test_admin_without_complaints_in_scope_sees_nobody(
        self, db_session, caller_for, second_admin_user, pending_complaint
    ):
        students = await StudentService(db_session).list_students(
            caller_for(second_admin_user)
        )

        assert students == []

    @pytest.mark.asyncio
    async def test_admin_suspends_student(
        self, db_session, caller_for, admin_user, student_user, pending_complaint
    ):
        item = await StudentService(db_session).update_status(
            caller_for(admin_user), student_user.student.id, StudentStatus.SUSPENDED
        )

        assert item.status == StudentStatus.SUSPENDED
        assert student_user.student.status == StudentStatus.SUSPENDED

    @pytest.mark.asyncio
    async def test_admin_without_authority_is_refused(
        self, db_session, caller_for, second_admin_user, student_user, pending_complaint
    ):
        with pytest.raises(AuthorizationError) as exc_info:
            await StudentService(db_session).update_status(
                caller_for(second_admin_user),
                student_user.student.id,
                StudentStatus.SUSPENDED,
            )
        assert exc_info.value.error_code == "NOT_RESOURCE_OWNER"
        assert student_user.student.status == StudentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_super_admin_cannot_touch_other_organization(
        self, db_session, caller_for, super_admin_user, foreign_student_user
    ):
        with pytest.raises(AuthorizationError) as exc_info:
            await StudentService(db_session).update_status(
                caller_for(super_admin_user),
                foreign_student_user.student.id,
                StudentStatus.SUSPENDED,
            )
        assert exc_info.value.error_code == "CROSS_ORGANIZATION_ACCESS"


class TestCategoryService:
    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(
        self, db_session, caller_for, super_admin_user, facilities_category
    ):
        with pytest.raises(ConflictError) as exc_info:
            await CategoryService(db_session).create_category(
                caller_for(super_admin_user), CreateCategoryRequest(name=" Facilities ")
            )
        assert exc_info.value.error_code == "CATEGORY_EXISTS"

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, db_session, caller_for, super_admin_user):
        with pytest.raises(ValidationFailedError) as exc_info:
            await CategoryService(db_session).create_category(
                caller_for(super_admin_user), CreateCategoryRequest(name="   ")
            )
        assert exc_info.value.error_code == "MISSING_FIELDS"

    @pytest.mark.asyncio
    async def test_admin_cannot_create(self, db_session, caller_for, admin_user):
        with pytest.raises(AuthorizationError):
            await CategoryService(db_session).create_category(
                caller_for(admin_user), CreateCategoryRequest(name="Hostels")
            )


class TestDepartmentsApi:
    def test_list_departments(self, client, auth_headers, student_user, department):
        response = client.get("/api/departments", headers=auth_headers(student_user))

        assert response.status_code == 200
        names = [d["name"] for d in response.json()["data"]["departments"]]
        assert names == ["Engineering"]

    def test_super_admin_creates_department(
        self, client, auth_headers, super_admin_user, department
    ):
        headers = auth_headers(super_admin_user)

        response = client.post(
            "/api/departments", json={"name": "Law"}, headers=headers
        )
        assert response.status_code == 201
        assert response.json()["data"]["department"]["name"] == "Law"

        duplicate = client.post(
            "/api/departments", json={"name": "Engineering"}, headers=headers
        )
        assert duplicate.status_code == 409
        assert _error_code(duplicate) == "DEPARTMENT_EXISTS"

    def test_admin_cannot_create_department(self, client, auth_headers, admin_user):
        response = client.post(
            "/api/departments", json={"name": "Law"}, headers=auth_headers(admin_user)
        )

        assert response.status_code == 403


class TestOrganizationApi:
    def test_get_organization(self, client, auth_headers, student_user, organization):
        response = client.get("/api/organization", headers=auth_headers(student_user))

        assert response.status_code == 200
        org = response.json()["data"]["organization"]
        assert org["id"] == organization.id
        assert org["email"] == "info@demo.edu"

    def test_super_admin_updates_contact_details(
        self, client, auth_headers, super_admin_user
    ):
        response = client.patch(
            "/api/organization",
            json={"phone": "+234 800 000"},
            headers=auth_headers(super_admin_user),
        )

        assert response.status_code == 200
        org = response.json()["data"]["organization"]
        assert org["phone"] == "+234 800 000"
        assert org["name"] == "Demo University"

    def test_admin_cannot_update(self, client, auth_headers, admin_user):
        response = client.patch(
            "/api/organization",
            json={"phone": "123"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 403
