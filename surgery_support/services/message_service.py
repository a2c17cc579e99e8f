"""Secure messaging between a patient and the care team."""

from collections import defaultdict
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from surgery_support.core.exceptions import (
    BadRequestException,
    ForbiddenException,
    NotFoundException,
)
from surgery_support.models.messages import conversations, messages
from surgery_support.models.users import roles, user_profiles
from surgery_support.schemas.messages import (
    NO_MESSAGES_PREVIEW,
    ConversationCreate,
    ConversationResponse,
    ConversationSummary,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
)

logger = structlog.get_logger(__name__)


def _message_query():
    return select(
        messages,
        user_profiles.c.full_name.label("sender_name"),
        roles.c.name.label("sender_role"),
    ).select_from(
        messages.outerjoin(user_profiles, messages.c.sender_id == user_profiles.c.id).outerjoin(
            roles, user_profiles.c.role_id == roles.c.id
        )
    )


def _to_message(row) -> MessageResponse:
    data = dict(row._mapping)
    sender_name = data.pop("sender_name")
    sender_role = data.pop("sender_role")
    data["read_by"] = data["read_by"] or []
    data["sender"] = {"id": data["sender_id"], "full_name": sender_name, "role": sender_role}
    return MessageResponse.model_validate(data)


class MessageService:
    """Service for conversations and their messages.

    Args:
        db: Database session
        user_id: Profile acting on the messages; used as sender and for
            read receipts
        owner_id: Restrict access to this patient's conversations; ``None``
            for clinical staff
    """

    def __init__(self, db: AsyncSession, user_id: UUID, owner_id: UUID | None = None):
        self.db = db
        self.user_id = user_id
        self.owner_id = owner_id

    def _scope(self) -> list[Any]:
        conditions = [conversations.c.deleted_at.is_(None)]
        if self.owner_id is not None:
            conditions.append(conversations.c.patient_id == self.owner_id)
        return conditions

    def _is_unread(self, sender_id: UUID, read_by: list[str] | None) -> bool:
        return sender_id != self.user_id and str(self.user_id) not in (read_by or [])

    async def list_conversations(
        self, patient_id: UUID | None = None
    ) -> list[ConversationSummary]:
        """
        Conversations in scope, most recently active first.

        Each entry carries the message count, a preview of the latest
        message and whether anything from someone else is still unread.
        """
        conditions = self._scope()
        if patient_id is not None:
            conditions.append(conversations.c.patient_id == patient_id)

        stmt = (
            select(conversations)
            .where(and_(*conditions))
            .order_by(conversations.c.last_message_at.desc())
        )
        rows = (await self.db.execute(stmt)).fetchall()
        if not rows:
            return []

        thread_stmt = (
            select(
                messages.c.conversation_id,
                messages.c.content,
                messages.c.sent_at,
                messages.c.sender_id,
                messages.c.read_by,
            )
            .where(
                and_(
                    messages.c.conversation_id.in_([row.id for row in rows]),
                    messages.c.deleted_at.is_(None),
                )
            )
            .order_by(messages.c.sent_at.asc())
        )
        threads: dict[UUID, list] = defaultdict(list)
        for message in (await self.db.execute(thread_stmt)).fetchall():
            threads[message.conversation_id].append(message)

        summaries = []
        for row in rows:
            thread = threads[row.id]
            latest = thread[-1] if thread else None
            summaries.append(
                ConversationSummary(
                    **dict(row._mapping),
                    message_count=len(thread),
                    latest_message=latest.content if latest else NO_MESSAGES_PREVIEW,
                    latest_message_time=latest.sent_at if latest else row.created_at,
                    has_unread=any(self._is_unread(m.sender_id, m.read_by) for m in thread),
                )
            )
        return summaries

    async def get_conversation(self, conversation_id: UUID) -> ConversationResponse:
        """
        Get a live conversation by ID.

        Raises:
            NotFoundException: If the conversation is missing or soft-deleted
            ForbiddenException: If it belongs to another patient
        """
        stmt = select(conversations).where(
            and_(conversations.c.id == conversation_id, conversations.c.deleted_at.is_(None))
        )
        row = (await self.db.execute(stmt)).fetchone()

        if not row:
            raise NotFoundException("Conversation not found")

        if self.owner_id is not None and row.patient_id != self.owner_id:
            raise ForbiddenException("Access denied to this conversation")

        return ConversationResponse.model_validate(dict(row._mapping))

    async def create_conversation(self, data: ConversationCreate) -> ConversationResponse:
        """
        Open a conversation for a patient.

        Raises:
            BadRequestException: If staff omit the patient
            ForbiddenException: If a patient opens one for someone else
        """
        if self.owner_id is not None:
            patient_id = data.patient_id or self.owner_id
            if patient_id != self.owner_id:
                raise ForbiddenException("Patients can only open their own conversations")
        elif data.patient_id is None:
            raise BadRequestException("patient_id is required")
        else:
            patient_id = data.patient_id

        now = datetime.now(UTC)
        stmt = (
            insert(conversations)
            .values(
                patient_id=patient_id,
                subject=data.subject,
                last_message_at=now,
                created_at=now,
                updated_at=now,
            )
            .returning(conversations)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        row = result.fetchone()
        logger.info(
            "conversation_created",
            conversation_id=str(row.id),
            patient_id=str(patient_id),
        )
        return ConversationResponse.model_validate(dict(row._mapping))

    async def list_messages(self, conversation_id: UUID) -> list[MessageResponse]:
        """Live messages of a conversation, oldest first, with sender details."""
        await self.get_conversation(conversation_id)

        stmt = (
            _message_query()
            .where(
                and_(
                    messages.c.conversation_id == conversation_id,
                    messages.c.deleted_at.is_(None),
                )
            )
            .order_by(messages.c.sent_at.asc())
        )
        result = await self.db.execute(stmt)
        return [_to_message(row) for row in result]

    async def send_message(self, conversation_id: UUID, data: MessageCreate) -> MessageResponse:
        """Post a message and bump the conversation's activity time."""
        await self.get_conversation(conversation_id)

        now = datetime.now(UTC)
        result = await self.db.execute(
            insert(messages)
            .values(
                conversation_id=conversation_id,
                sender_id=self.user_id,
                content=data.content,
                urgent=data.urgent,
                attachments=data.attachments,
                read_by=[],
                sent_at=now,
                created_at=now,
                updated_at=now,
            )
            .returning(messages.c.id)
        )
        message_id = result.scalar_one()

        await self.db.execute(
            update(conversations)
            .where(conversations.c.id == conversation_id)
            .values(last_message_at=now, updated_at=now)
        )
        await self.db.commit()

        logger.info(
            "message_sent",
            conversation_id=str(conversation_id),
            message_id=str(message_id),
            urgent=data.urgent,
        )
        return await self._load_message(message_id)

    async def update_message(self, message_id: UUID, data: MessageUpdate) -> MessageResponse:
        """
        Edit the content or urgency of one's own message.

        Raises:
            ForbiddenException: If the current user did not send it
        """
        message = await self._load_message(message_id)
        if message.sender_id != self.user_id:
            raise ForbiddenException("Only the sender can edit this message")

        values = data.model_dump(exclude_none=True)
        if not values:
            return message

        values["updated_at"] = datetime.now(UTC)
        await self.db.execute(
            update(messages).where(messages.c.id == message_id).values(**values)
        )
        await self.db.commit()
        logger.info("message_updated", message_id=str(message_id))
        return await self._load_message(message_id)

    async def delete_message(self, message_id: UUID) -> None:
        """
        Soft delete one's own message.

        Raises:
            ForbiddenException: If the current user did not send it
        """
        message = await self._load_message(message_id)
        if message.sender_id != self.user_id:
            raise ForbiddenException("Only the sender can delete this message")

        now = datetime.now(UTC)
        await self.db.execute(
            update(messages)
            .where(messages.c.id == message_id)
            .values(deleted_at=now, updated_at=now)
        )
        await self.db.commit()
        logger.info("message_deleted", message_id=str(message_id))

    async def mark_message_read(self, message_id: UUID) -> MessageResponse:
        """Add the current user to a message's readers."""
        message = await self._load_message(message_id)
        reader = str(self.user_id)
        if reader in message.read_by:
            return message

        await self.db.execute(
            update(messages)
            .where(messages.c.id == message_id)
            .values(read_by=[*message.read_by, reader], updated_at=datetime.now(UTC))
        )
        await self.db.commit()
        return await self._load_message(message_id)

    async def mark_conversation_read(self, conversation_id: UUID) -> int:
        """
        Mark every message from other participants as read.

        Returns:
            Number of messages that were unread
        """
        await self.get_conversation(conversation_id)

        stmt = select(messages.c.id, messages.c.sender_id, messages.c.read_by).where(
            and_(
                messages.c.conversation_id == conversation_id,
                messages.c.sender_id != self.user_id,
                messages.c.deleted_at.is_(None),
            )
        )
        unread = [
            row
            for row in (await self.db.execute(stmt)).fetchall()
            if self._is_unread(row.sender_id, row.read_by)
        ]

        now = datetime.now(UTC)
        reader = str(self.user_id)
        for row in unread:
            await self.db.execute(
                update(messages)
                .where(messages.c.id == row.id)
                .values(read_by=[*(row.read_by or []), reader], updated_at=now)
            )
        await self.db.commit()

        logger.info(
            "conversation_marked_read",
            conversation_id=str(conversation_id),
            marked=len(unread),
        )
        return len(unread)

    async def _load_message(self, message_id: UUID) -> MessageResponse:
        stmt = _message_query().where(
            and_(messages.c.id == message_id, messages.c.deleted_at.is_(None))
        )
        row = (await self.db.execute(stmt)).fetchone()
        if not row:
            raise NotFoundException("Message not found")

        # Access follows the conversation
        await self.get_conversation(row.conversation_id)
        return _to_message(row)
