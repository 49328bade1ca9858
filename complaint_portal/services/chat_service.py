from typing import List, Optional, Tuple

from fastapi import Depends, UploadFile
from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from complaint_portal.config.settings import settings
from complaint_portal.db.models import (
    Category,
    ChatMessage,
    Complaint,
    MessageStatus,
)
from complaint_portal.db.session import get_sync_session
from complaint_portal.schemas.chat_schemas import (
    ChatAdminItem,
    ChatComplaintItem,
    ChatMessageResponse,
    ChatStudentItem,
)
from complaint_portal.services.access_policy import Action, CallerContext, authorize
from complaint_portal.services.scope_service import ScopeService
from complaint_portal.services.storage_service import StorageService
from complaint_portal.utils.errors import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    ValidationFailedError,
)
from complaint_portal.utils.logging import get_logger

logger = get_logger()

FILE_ONLY_MESSAGE = "File uploaded"


def build_message_response(message: ChatMessage) -> ChatMessageResponse:
    return ChatMessageResponse(
        id=message.id,
        complaint_id=message.complaint_id,
        message=message.message,
        file_url=message.file_url,
        file_name=message.file_name,
        status=message.status,
        sender_role="STUDENT" if message.sender_student_id else "ADMIN",
        sender_student_id=message.sender_student_id,
        sender_admin_id=message.sender_admin_id,
        receiver_student_id=message.receiver_student_id,
        receiver_admin_id=message.receiver_admin_id,
        timestamp=message.timestamp,
    )


class ChatService:
    """
    Complaint-scoped conversations between a student and an admin.

    A conversation exists only where a complaint links the pair: the
    student filed it and the admin currently owns its category. Delivery
    status only ever moves forward (SENT, RECEIVED, READ).
    """

    def __init__(self, db_session: Session, storage: Optional[StorageService] = None):
        self.db = db_session
        self.scope = ScopeService(db_session)
        self._storage = storage

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = StorageService()
        return self._storage

    def _load_complaint(self, complaint_id: str) -> Complaint:
        stmt = (
            select(Complaint)
            .where(Complaint.id == complaint_id)
            .options(selectinload(Complaint.category))
        )
        complaint = self.db.execute(stmt).scalar_one_or_none()
        if not complaint:
            raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")
        return complaint

    @staticmethod
    def _links(complaint: Complaint, student_id: str, admin_id: str) -> bool:
        return (
            complaint.student_id == student_id
            and complaint.category is not None
            and complaint.category.admin_id == admin_id
        )

    def _ensure_party(self, caller: CallerContext, complaint: Complaint):
        if caller.is_student:
            allowed = complaint.student_id == caller.student_id
        else:
            allowed = (
                caller.admin_id is not None
                and complaint.category is not None
                and complaint.category.admin_id == caller.admin_id
            )
        if not allowed:
            raise AuthorizationError(
                "You are not part of this conversation", "NOT_CONVERSATION_PARTY"
            )

    def _resolve_pair(
        self,
        caller: CallerContext,
        complaint: Optional[Complaint],
        receiver_id: Optional[str],
    ) -> Tuple[str, str]:
        """Return (student_id, admin_id) for the conversation; sender is the caller"""
        if caller.is_student:
            if not caller.student_id:
                raise AuthorizationError("Student profile required", "STUDENT_REQUIRED")
            admin_id = receiver_id
            if admin_id is None and complaint is not None and complaint.category:
                admin_id = complaint.category.admin_id
            student_id = caller.student_id
        else:
            if not caller.admin_id:
                raise AuthorizationError("Admin profile required", "ADMIN_REQUIRED")
            student_id = receiver_id
            if student_id is None and complaint is not None:
                student_id = complaint.student_id
            admin_id = caller.admin_id

        if not student_id or not admin_id:
            raise ValidationFailedError(
                "A receiver or a complaint with an assigned admin is required",
                "MISSING_RECEIVER",
            )
        return student_id, admin_id

    async def latest_shared_complaint(
        self, student_id: str, admin_id: str
    ) -> Optional[Complaint]:
        stmt = (
            select(Complaint)
            .join(Category, Complaint.category_id == Category.id)
            .where(Complaint.student_id == student_id, Category.admin_id == admin_id)
            .options(selectinload(Complaint.category))
            .order_by(Complaint.date_submitted.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    async def send_message(
        self,
        caller: CallerContext,
        complaint_id: Optional[str] = None,
        receiver_id: Optional[str] = None,
        text: Optional[str] = None,
        upload: Optional[UploadFile] = None,
    ) -> ChatMessageResponse:
        """
        Send a message, optionally with a file, from the caller.

        Without `complaint_id` the newest complaint linking the pair is used.
        """
        authorize(caller, Action.SEND_MESSAGE)

        text = (text or "").strip()
        if not text and upload is None:
            raise ValidationFailedError("Message or file is required", "EMPTY_MESSAGE")

        complaint = self._load_complaint(complaint_id) if complaint_id else None
        student_id, admin_id = self._resolve_pair(caller, complaint, receiver_id)

        if complaint is None:
            complaint = await self.latest_shared_complaint(student_id, admin_id)
            if complaint is None:
                raise NotFoundError(
                    "No complaint links you with this recipient", "NO_SHARED_COMPLAINT"
                )
        elif not self._links(complaint, student_id, admin_id):
            raise AuthorizationError(
                "This complaint does not link you with the recipient",
                "NOT_CONVERSATION_PARTY",
            )

        file_url = file_name = public_id = None
        if upload is not None:
            uploaded = await self.storage.upload(
                upload, settings.CLOUDINARY_CHAT_FOLDER, "FILE_UPLOAD_FAILED"
            )
            file_url, file_name = uploaded["url"], uploaded["file_name"]
            public_id = uploaded.get("public_id")
            text = text or FILE_ONLY_MESSAGE

        message = ChatMessage(
            complaint_id=complaint.id,
            message=text,
            file_url=file_url,
            file_name=file_name,
            status=MessageStatus.SENT,
        )
        if caller.is_student:
            message.sender_student_id = student_id
            message.receiver_admin_id = admin_id
        else:
            message.sender_admin_id = admin_id
            message.receiver_student_id = student_id

        try:
            self.db.add(message)
            self.db.commit()
            self.db.refresh(message)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store message on complaint {complaint.id}: {e}")
            if public_id:
                await self.storage.delete(public_id)
            raise DatabaseError("Failed to send message", "MESSAGE_SEND_FAILED")

        return build_message_response(message)

    async def list_messages(
        self, caller: CallerContext, complaint_id: str
    ) -> List[ChatMessageResponse]:
        authorize(caller, Action.READ_MESSAGES)

        complaint = self._load_complaint(complaint_id)
        self._ensure_party(caller, complaint)

        stmt = (
            select(ChatMessage)
            .where(ChatMessage.complaint_id == complaint.id)
            .order_by(ChatMessage.timestamp.asc())
        )
        return [build_message_response(m) for m in self.db.execute(stmt).scalars()]

    def _is_receiver(self, caller: CallerContext, message: ChatMessage) -> bool:
        return (
            caller.student_id is not None
            and message.receiver_student_id == caller.student_id
        ) or (
            caller.admin_id is not None and message.receiver_admin_id == caller.admin_id
        )

    async def advance_status(
        self, caller: CallerContext, message_id: str, status: MessageStatus
    ) -> ChatMessageResponse:
        """
        Move a message's delivery status forward.

        Re-applying the current status, or an earlier one, leaves the stored
        record untouched and returns it.
        """
        authorize(caller, Action.READ_MESSAGES)

        message = self.db.get(ChatMessage, message_id)
        if not message:
            raise NotFoundError("Message not found", "MESSAGE_NOT_FOUND")
        if not self._is_receiver(caller, message):
            raise AuthorizationError(
                "Only the recipient can update message status", "NOT_MESSAGE_RECEIVER"
            )

        if status.rank <= message.status.rank:
            return build_message_response(message)

        try:
            message.status = status
            self.db.commit()
            self.db.refresh(message)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update message {message_id}: {e}")
            raise DatabaseError("Failed to update message", "MESSAGE_UPDATE_FAILED")

        return build_message_response(message)

    async def mark_conversation_read(
        self, caller: CallerContext, complaint_id: str
    ) -> int:
        """Mark every message the caller received on a complaint as READ"""
        authorize(caller, Action.READ_MESSAGES)

        complaint = self._load_complaint(complaint_id)
        self._ensure_party(caller, complaint)

        receiver_clauses = []
        if caller.student_id:
            receiver_clauses.append(ChatMessage.receiver_student_id == caller.student_id)
        if caller.admin_id:
            receiver_clauses.append(ChatMessage.receiver_admin_id == caller.admin_id)

        stmt = select(ChatMessage).where(
            ChatMessage.complaint_id == complaint.id,
            ChatMessage.status != MessageStatus.READ,
            or_(*receiver_clauses),
        )
        unread = self.db.execute(stmt).scalars().all()
        if not unread:
            return 0

        try:
            for message in unread:
                message.status = MessageStatus.READ
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark complaint {complaint_id} as read: {e}")
            raise DatabaseError("Failed to update messages", "MESSAGE_UPDATE_FAILED")

        return len(unread)

    # Conversation partner discovery
    async def admin_chat_students(self, caller: CallerContext) -> List[ChatStudentItem]:
        authorize(caller, Action.ADMIN_CHAT)
        students = await self.scope.chat_students_for_admin(caller.admin_id)
        return [ChatStudentItem.model_validate(student) for student in students]

    async def admin_chat_complaints(
        self, caller: CallerContext, student_id: Optional[str]
    ) -> List[ChatComplaintItem]:
        authorize(caller, Action.ADMIN_CHAT)
        if not student_id:
            raise ValidationFailedError(
                "Missing studentId parameter", "MISSING_STUDENT_ID"
            )

        complaints = await self.scope.chat_complaints_for_admin(
            caller.admin_id, student_id
        )
        return [
            ChatComplaintItem(
                id=complaint.id,
                title=complaint.title,
                status=complaint.status,
                date_submitted=complaint.date_submitted,
                category=complaint.category.name if complaint.category else None,
            )
            for complaint in complaints
        ]

    async def student_chat_admins(self, caller: CallerContext) -> List[ChatAdminItem]:
        authorize(caller, Action.STUDENT_CHAT)
        if not caller.student_id:
            return []

        admins = await self.scope.admins_for_student(caller.student_id)
        return [
            ChatAdminItem(
                id=admin.id,
                full_name=admin.full_name,
                email=admin.email,
                avatar_url=admin.avatar_url,
                categories=sorted(category.name for category in admin.categories),
            )
            for admin in admins
        ]


def get_chat_service(
    db: Session = Depends(get_sync_session),
) -> ChatService:
    """Dependency to provide ChatService instance"""
    return ChatService(db)
