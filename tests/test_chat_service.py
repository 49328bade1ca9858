import io

import pytest
from fastapi import UploadFile
from sqlalchemy.exc import OperationalError

from complaint_portal.db.models import ChatMessage, MessageStatus
from complaint_portal.services.chat_service import FILE_ONLY_MESSAGE, ChatService
from complaint_portal.utils.errors import (
    AuthorizationError,
    DatabaseError,
    NotFoundError,
    ValidationFailedError,
)


class FakeStorage:
    """Records uploads instead of calling Cloudinary."""

    def __init__(self):
        self.uploads = []
        self.deleted = []

    async def upload(self, file, folder, error_code="UPLOAD_FAILED"):
        self.uploads.append((file.filename, folder, error_code))
        return {
            "url": f"https://cdn.example.com/{folder}/{file.filename}",
            "public_id": f"{folder}/{file.filename}",
            "file_name": file.filename,
        }

    async def delete(self, public_id):
        self.deleted.append(public_id)
        return True


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def chat_service(db_session, storage):
    return ChatService(db_session, storage=storage)


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_student_writes_to_category_admin(
        self, chat_service, caller_for, student_user, admin_user, pending_complaint
    ):
        sent = await chat_service.send_message(
            caller_for(student_user),
            complaint_id=pending_complaint.id,
            text="Any update?",
        )

        assert sent.status == MessageStatus.SENT
        assert sent.sender_role == "STUDENT"
        assert sent.sender_student_id == student_user.student.id
        assert sent.receiver_admin_id == admin_user.admin.id
        assert sent.complaint_id == pending_complaint.id

    @pytest.mark.asyncio
    async def test_falls_back_to_latest_shared_complaint(
        self, chat_service, caller_for, student_user, admin_user, pending_complaint
    ):
        sent = await chat_service.send_message(
            caller_for(admin_user),
            receiver_id=student_user.student.id,
            text="We are on it",
        )

        assert sent.complaint_id == pending_complaint.id
        assert sent.sender_role == "ADMIN"
        assert sent.receiver_student_id == student_user.student.id

    @pytest.mark.asyncio
    async def test_no_shared_complaint(
        self, chat_service, caller_for, other_student_user, admin_user
    ):
        with pytest.raises(NotFoundError) as exc_info:
            await chat_service.send_message(
                caller_for(admin_user),
                receiver_id=other_student_user.student.id,
                text="Hello",
            )
        assert exc_info.value.error_code == "NO_SHARED_COMPLAINT"

    @pytest.mark.asyncio
    async def test_outsider_cannot_use_complaint(
        self, chat_service, caller_for, second_admin_user, pending_complaint
    ):
        with pytest.raises(AuthorizationError):
            await chat_service.send_message(
                caller_for(second_admin_user),
                complaint_id=pending_complaint.id,
                text="Hi",
            )

    @pytest.mark.asyncio
    async def test_empty_message(
        self, chat_service, caller_for, student_user, pending_complaint
    ):
        with pytest.raises(ValidationFailedError) as exc_info:
            await chat_service.send_message(
                caller_for(student_user), complaint_id=pending_complaint.id, text="  "
            )
        assert exc_info.value.error_code == "EMPTY_MESSAGE"

    @pytest.mark.asyncio
    async def test_file_only_message(
        self, chat_service, storage, caller_for, student_user, pending_complaint
    ):
        upload = UploadFile(file=io.BytesIO(b"\x89PNG..."), filename="ac.png")

        sent = await chat_service.send_message(
            caller_for(student_user), complaint_id=pending_complaint.id, upload=upload
        )

        assert sent.message == FILE_ONLY_MESSAGE
        assert sent.file_name == "ac.png"
        assert sent.file_url.endswith("/ac.png")
        assert storage.uploads == [("ac.png", "complaint_uploads", "FILE_UPLOAD_FAILED")]

    @pytest.mark.asyncio
    async def test_failed_write_removes_uploaded_file(
        self,
        monkeypatch,
        db_session,
        chat_service,
        storage,
        caller_for,
        student_user,
        pending_complaint,
    ):
        def broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(db_session, "commit", broken_commit)
        upload = UploadFile(file=io.BytesIO(b"\x89PNG..."), filename="ac.png")

        with pytest.raises(DatabaseError) as exc_info:
            await chat_service.send_message(
                caller_for(student_user),
                complaint_id=pending_complaint.id,
                upload=upload,
            )
        assert exc_info.value.error_code == "MESSAGE_SEND_FAILED"
        assert storage.deleted == ["complaint_uploads/ac.png"]



class TestMessageStatus:
    @pytest.fixture
    def sent_message(self, db_session, student_user, admin_user, pending_complaint):
        message = ChatMessage(
            complaint_id=pending_complaint.id,
            message="Any update?",
            status=MessageStatus.SENT,
            sender_student_id=student_user.student.id,
            receiver_admin_id=admin_user.admin.id,
        )
        db_session.add(message)
        db_session.commit()
        return message

    @pytest.mark.asyncio
    async def test_status_only_moves_forward(
        self, chat_service, caller_for, admin_user, sent_message
    ):
        caller = caller_for(admin_user)

        read = await chat_service.advance_status(
            caller, sent_message.id, MessageStatus.READ
        )
        assert read.status == MessageStatus.READ

        again = await chat_service.advance_status(
            caller, sent_message.id, MessageStatus.RECEIVED
        )
        assert again.status == MessageStatus.READ
        assert sent_message.status == MessageStatus.READ

    @pytest.mark.asyncio
    async def test_repeating_a_status_is_a_no_op(
        self, chat_service, caller_for, admin_user, sent_message
    ):
        caller = caller_for(admin_user)
        first = await chat_service.advance_status(
            caller, sent_message.id, MessageStatus.RECEIVED
        )
        second = await chat_service.advance_status(
            caller, sent_message.id, MessageStatus.RECEIVED
        )
        assert first == second

    @pytest.mark.asyncio
    async def test_only_receiver_updates(
        self, chat_service, caller_for, student_user, sent_message
    ):
        with pytest.raises(AuthorizationError) as exc_info:
            await chat_service.advance_status(
                caller_for(student_user), sent_message.id, MessageStatus.READ
            )
        assert exc_info.value.error_code == "NOT_MESSAGE_RECEIVER"

    @pytest.mark.asyncio
    async def test_mark_conversation_read(
        self, chat_service, caller_for, admin_user, pending_complaint, sent_message
    ):
        caller = caller_for(admin_user)

        assert await chat_service.mark_conversation_read(caller, pending_complaint.id) == 1
        assert sent_message.status == MessageStatus.READ
        assert await chat_service.mark_conversation_read(caller, pending_complaint.id) == 0

    @pytest.mark.asyncio
    async def test_list_messages_requires_party(
        self, chat_service, caller_for, other_student_user, pending_complaint, sent_message
    ):
        with pytest.raises(AuthorizationError):
            await chat_service.list_messages(
                caller_for(other_student_user), pending_complaint.id
            )


class TestChatPartners:
    @pytest.mark.asyncio
    async def test_admin_sees_students_with_complaints(
        self, chat_service, caller_for, admin_user, student_user, pending_complaint
    ):
        students = await chat_service.admin_chat_students(caller_for(admin_user))
        assert [s.id for s in students] == [student_user.student.id]

    @pytest.mark.asyncio
    async def test_student_sees_category_admins(
        self, chat_service, caller_for, admin_user, student_user, pending_complaint
    ):
        admins = await chat_service.student_chat_admins(caller_for(student_user))

        assert [a.id for a in admins] == [admin_user.admin.id]
        assert admins[0].categories == ["Facilities"]

    @pytest.mark.asyncio
    async def test_admin_complaints_need_student_id(
        self, chat_service, caller_for, admin_user
    ):
        with pytest.raises(ValidationFailedError):
            await chat_service.admin_chat_complaints(caller_for(admin_user), None)
