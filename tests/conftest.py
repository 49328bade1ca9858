import os

# Must be set before the application settings are imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "complaints-test-secret-0123456789abcdef")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from typing import Generator, Optional

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from complaint_portal.config.settings import settings
from complaint_portal.db.models import (
    Admin,
    Base,
    Category,
    Complaint,
    ComplaintStatus,
    Department,
    Organization,
    Student,
    User,
    UserRole,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.main import app
from complaint_portal.middlewares.auth_middleware import get_caller_context
from complaint_portal.utils.auth import ProviderIdentity


@pytest.fixture
def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a database session for each test."""
    session = Session(bind=test_engine, expire_on_commit=False)
    yield session
    session.rollback()
    session.close()


def _create_user(
    db: Session,
    role: UserRole,
    email: str,
    name: str,
    organization: Organization,
    department: Department = None,
) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        organization_id=organization.id,
        department_id=department.id if department else None,
        is_active=True,
    )
    if role == UserRole.STUDENT:
        user.student = Student(
            full_name=name,
            email=email,
            matric_no=f"MAT-{name.split()[0].upper()}",
            department=department.name if department else "",
            level="300",
        )
    else:
        user.admin = Admin(full_name=name, email=email, username=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# Test data factories
@pytest.fixture
def organization(db_session: Session) -> Organization:
    """Create a sample organization for testing."""
    org = Organization(name="Demo University", email="info@demo.edu")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def other_organization(db_session: Session) -> Organization:
    org = Organization(name="Other College")
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture
def department(db_session: Session, organization: Organization) -> Department:
    dept = Department(name="Engineering", organization_id=organization.id)
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture
def super_admin_user(db_session: Session, organization: Organization) -> User:
    return _create_user(
        db_session, UserRole.SUPER_ADMIN, "root@demo.edu", "Root Admin", organization
    )


@pytest.fixture
def admin_user(db_session: Session, organization: Organization) -> User:
    """Admin A, responsible for the facilities category."""
    return _create_user(
        db_session, UserRole.ADMIN, "ada@demo.edu", "Ada Admin", organization
    )


@pytest.fixture
def second_admin_user(db_session: Session, organization: Organization) -> User:
    """Admin B, responsible for nothing until reassigned."""
    return _create_user(
        db_session, UserRole.ADMIN, "bob@demo.edu", "Bob Admin", organization
    )


@pytest.fixture
def student_user(
    db_session: Session, organization: Organization, department: Department
) -> User:
    return _create_user(
        db_session,
        UserRole.STUDENT,
        "sam@demo.edu",
        "Sam Student",
        organization,
        department,
    )


@pytest.fixture
def other_student_user(
    db_session: Session, organization: Organization, department: Department
) -> User:
    return _create_user(
        db_session,
        UserRole.STUDENT,
        "tia@demo.edu",
        "Tia Student",
        organization,
        department,
    )


@pytest.fixture
def foreign_student_user(
    db_session: Session, other_organization: Organization
) -> User:
    return _create_user(
        db_session,
        UserRole.STUDENT,
        "olu@other.edu",
        "Olu Outsider",
        other_organization,
    )


@pytest.fixture
def facilities_category(
    db_session: Session, organization: Organization, admin_user: User
) -> Category:
    """Create the 'Facilities' category owned by admin A."""
    category = Category(
        name="Facilities",
        description="Broken equipment, classrooms, hostels",
        organization_id=organization.id,
        admin_id=admin_user.admin.id,
    )
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def unassigned_category(db_session: Session, organization: Organization) -> Category:
    category = Category(name="Library", organization_id=organization.id)
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture
def pending_complaint(
    db_session: Session,
    student_user: User,
    facilities_category: Category,
    department: Department,
) -> Complaint:
    """A PENDING complaint by the student, routed to admin A."""
    complaint = Complaint(
        title="Broken AC",
        description="The AC in room 101 has not worked for a week",
        status=ComplaintStatus.PENDING,
        student_id=student_user.student.id,
        category_id=facilities_category.id,
        department_id=department.id,
        admin_id=facilities_category.admin_id,
        date_submitted=datetime(2024, 3, 5, 10, 0),
    )
    db_session.add(complaint)
    db_session.commit()
    return complaint


# Callers and HTTP access
@pytest.fixture
def caller_for(db_session: Session):
    """Build the CallerContext the API would build for a user."""

    def _caller_for(user: User):
        return get_caller_context(
            identity=ProviderIdentity(user_id=user.id, email=user.email),
            db=db_session,
        )

    return _caller_for


def make_access_token(
    user_id: str, email: str, app_metadata: Optional[dict] = None, **metadata
) -> str:
    """Mint an access token the way the auth provider signs them."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email,
        "aud": settings.SUPABASE_JWT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(hours=1),
        "app_metadata": app_metadata or {},
        "user_metadata": metadata,
    }
    return jwt.encode(
        claims,
        settings.SUPABASE_JWT_SECRET,
        algorithm=settings.SUPABASE_JWT_ALGORITHM,
    )


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User, app_metadata: Optional[dict] = None, **metadata) -> dict:
        token = make_access_token(user.id, user.email, app_metadata, **metadata)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """API client bound to the test database."""

    def override_session():
        yield db_session

    app.dependency_overrides[get_sync_session] = override_session
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
