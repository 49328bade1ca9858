from typing import List, Optional
from datetime import datetime
import enum
import uuid

from sqlalchemy import (
    String,
    Boolean,
    Text,
    ForeignKey,
    Enum,
    Index,
    UniqueConstraint,
    CheckConstraint,
    DateTime,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    validates,
)

from complaint_portal.utils.datetime_utils import naive_utc_now


class Base(DeclarativeBase):
    pass


def generate_id() -> str:
    return str(uuid.uuid4())


# Enums
class UserRole(enum.Enum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class ComplaintStatus(enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"


class MessageStatus(enum.Enum):
    SENT = "SENT"
    RECEIVED = "RECEIVED"
    READ = "READ"

    @property
    def rank(self) -> int:
        return MESSAGE_STATUS_ORDER.index(self)


MESSAGE_STATUS_ORDER = [MessageStatus.SENT, MessageStatus.RECEIVED, MessageStatus.READ]


class StudentStatus(enum.Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class NotificationKind(enum.Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ALERT = "ALERT"


def _enum_type(enum_cls) -> Enum:
    """Store enum values (not member names) as plain strings."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=20,
    )


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, onupdate=naive_utc_now
    )


# Models
class Organization(Base, AuditMixin):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    address: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships
    users: Mapped[List["User"]] = relationship(back_populates="organization")
    categories: Mapped[List["Category"]] = relationship(back_populates="organization")
    departments: Mapped[List["Department"]] = relationship(
        back_populates="organization"
    )


class Department(Base, AuditMixin):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    organization_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE")
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        back_populates="departments"
    )
    complaints: Mapped[List["Complaint"]] = relationship(back_populates="department")
    users: Mapped[List["User"]] = relationship(back_populates="department")

    # Constraints
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_departments_org_name"),
        Index("idx_departments_organization_id", "organization_id"),
    )


class User(Base, AuditMixin):
    __tablename__ = "users"

    # Same id as the identity provider's user
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    role: Mapped[UserRole] = mapped_column(_enum_type(UserRole), nullable=False)
    organization_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="SET NULL")
    )
    department_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("departments.id", ondelete="SET NULL")
    )
    profile_image_url: Mapped[Optional[str]] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    two_factor_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    two_factor_secret: Mapped[Optional[str]] = mapped_column(String(64))
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        back_populates="users"
    )
    department: Mapped[Optional["Department"]] = relationship(back_populates="users")
    student: Mapped[Optional["Student"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    admin: Mapped[Optional["Admin"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    preferences: Mapped[Optional["UserSettings"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    # Constraints
    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_role_active", "role", "is_active"),
        Index("idx_users_organization_id", "organization_id"),
    )


class UserSettings(Base, AuditMixin):
    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    # JSON stored as Text - serialize/deserialize in application
    settings: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="preferences")


class Student(Base, AuditMixin):
    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,  # One-to-one relationship
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    matric_no: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    department: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    level: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[StudentStatus] = mapped_column(
        _enum_type(StudentStatus), default=StudentStatus.ACTIVE, nullable=False
    )
    joined_date: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="student")
    complaints: Mapped[List["Complaint"]] = relationship(
        back_populates="student", cascade="all, delete-orphan"
    )

    # Constraints
    __table_args__ = (
        Index("idx_students_user_id", "user_id"),
        Index("idx_students_status", "status"),
    )


class Admin(Base, AuditMixin):
    __tablename__ = "admins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,  # One-to-one relationship
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    username: Mapped[str] = mapped_column(String(320), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(200))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500))
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="admin")
    categories: Mapped[List["Category"]] = relationship(back_populates="admin")

    # Constraints
    __table_args__ = (Index("idx_admins_user_id", "user_id"),)


class Category(Base, AuditMixin):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    organization_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE")
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    # NULL routes new complaints to the unassigned queue
    admin_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admins.id", ondelete="SET NULL")
    )

    # Relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        back_populates="categories"
    )
    admin: Mapped[Optional["Admin"]] = relationship(back_populates="categories")
    # No delete cascade: removing a category detaches its complaints
    complaints: Mapped[List["Complaint"]] = relationship(back_populates="category")

    # Constraints
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_categories_org_name"),
        Index("idx_categories_organization_id", "organization_id"),
        Index("idx_categories_admin_id", "admin_id"),
    )


class Complaint(Base, AuditMixin):
    __tablename__ = "complaints"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ComplaintStatus] = mapped_column(
        _enum_type(ComplaintStatus), default=ComplaintStatus.PENDING, nullable=False
    )
    date_submitted: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )
    student_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL")
    )
    department_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("departments.id", ondelete="SET NULL")
    )
    # Snapshot of the category admin at submission time
    admin_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admins.id", ondelete="SET NULL")
    )

    # Relationships
    student: Mapped["Student"] = relationship(back_populates="complaints")
    category: Mapped[Optional["Category"]] = relationship(back_populates="complaints")
    department: Mapped[Optional["Department"]] = relationship(
        back_populates="complaints"
    )
    assigned_admin: Mapped[Optional["Admin"]] = relationship()
    messages: Mapped[List["ChatMessage"]] = relationship(
        back_populates="complaint", cascade="all, delete-orphan"
    )

    # Constraints
    __table_args__ = (
        Index("idx_complaints_student_id", "student_id"),
        Index("idx_complaints_category_id", "category_id"),
        Index("idx_complaints_status", "status"),
        Index("idx_complaints_date_submitted", "date_submitted"),
    )

    @validates("student_id")
    def _freeze_owner(self, key, value):
        current = self.__dict__.get("student_id")
        if current is not None and value != current:
            raise ValueError("Complaint ownership cannot be changed")
        return value


class ChatMessage(Base, AuditMixin):
    __tablename__ = "chat_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    complaint_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    file_url: Mapped[Optional[str]] = mapped_column(String(500))
    file_name: Mapped[Optional[str]] = mapped_column(String(300))
    status: Mapped[MessageStatus] = mapped_column(
        _enum_type(MessageStatus), default=MessageStatus.SENT, nullable=False
    )
    sender_student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE")
    )
    sender_admin_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admins.id", ondelete="CASCADE")
    )
    receiver_student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE")
    )
    receiver_admin_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admins.id", ondelete="CASCADE")
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

    # Relationships
    complaint: Mapped["Complaint"] = relationship(back_populates="messages")
    sender_student: Mapped[Optional["Student"]] = relationship(
        foreign_keys=[sender_student_id]
    )
    sender_admin: Mapped[Optional["Admin"]] = relationship(
        foreign_keys=[sender_admin_id]
    )

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "(sender_student_id IS NULL) <> (sender_admin_id IS NULL)",
            name="ck_chat_messages_single_sender",
        ),
        Index("idx_chat_messages_complaint_ts", "complaint_id", "timestamp"),
    )


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    action: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    ip_address: Mapped[Optional[str]] = mapped_column(String(100))
    admin_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admins.id", ondelete="SET NULL")
    )
    student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="SET NULL")
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, default=naive_utc_now, nullable=False
    )

    # Relationships
    admin: Mapped[Optional["Admin"]] = relationship()
    student: Mapped[Optional["Student"]] = relationship()

    # Constraints
    __table_args__ = (Index("idx_activity_logs_timestamp", "timestamp"),)


class Notification(Base, AuditMixin):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationKind] = mapped_column(
        _enum_type(NotificationKind), default=NotificationKind.INFO, nullable=False
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    admin_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("admins.id", ondelete="CASCADE")
    )
    student_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("students.id", ondelete="CASCADE")
    )

    # Constraints
    __table_args__ = (
        Index("idx_notifications_admin_id", "admin_id"),
        Index("idx_notifications_student_id", "student_id"),
    )
