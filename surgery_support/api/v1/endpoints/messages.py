"""Conversation and message endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from surgery_support.core.roles import Capability
from surgery_support.dependencies import CurrentSession, MessageServiceDep
from surgery_support.schemas.messages import (
    ConversationCreate,
    ConversationResponse,
    ConversationSummary,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
)

router = APIRouter(tags=["Messages"])


@router.get(
    "/conversations",
    response_model=list[ConversationSummary],
    summary="List conversations",
)
async def list_conversations(
    service: MessageServiceDep,
    patient_id: UUID | None = Query(None),
) -> list[ConversationSummary]:
    """Conversations visible to the current user, most recently active first."""
    return await service.list_conversations(patient_id=patient_id)


@router.post(
    "/conversations",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start conversation",
)
async def create_conversation(
    data: ConversationCreate,
    session: CurrentSession,
    service: MessageServiceDep,
) -> ConversationResponse:
    """
    Open a conversation between a patient and the care team.

    Patients open their own; staff must name the patient.
    """
    session.require(Capability.SEND_MESSAGES)
    return await service.create_conversation(data)


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationResponse,
    summary="Get conversation",
)
async def get_conversation(
    conversation_id: UUID,
    service: MessageServiceDep,
) -> ConversationResponse:
    return await service.get_conversation(conversation_id)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[MessageResponse],
    summary="List messages",
)
async def list_messages(
    conversation_id: UUID,
    service: MessageServiceDep,
) -> list[MessageResponse]:
    """Messages oldest first, each with its sender."""
    return await service.list_messages(conversation_id)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send message",
)
async def send_message(
    conversation_id: UUID,
    data: MessageCreate,
    session: CurrentSession,
    service: MessageServiceDep,
) -> MessageResponse:
    session.require(Capability.SEND_MESSAGES)
    return await service.send_message(conversation_id, data)


@router.post(
    "/conversations/{conversation_id}/read",
    response_model=MarkReadResponse,
    summary="Mark conversation read",
)
async def mark_conversation_read(
    conversation_id: UUID,
    service: MessageServiceDep,
) -> MarkReadResponse:
    """Mark every message from other participants as read by the current user."""
    return MarkReadResponse(marked=await service.mark_conversation_read(conversation_id))


@router.put("/messages/{message_id}", response_model=MessageResponse, summary="Edit message")
async def update_message(
    message_id: UUID,
    data: MessageUpdate,
    session: CurrentSession,
    service: MessageServiceDep,
) -> MessageResponse:
    """Edit one's own message."""
    session.require(Capability.SEND_MESSAGES)
    return await service.update_message(message_id, data)


@router.delete(
    "/messages/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete message",
)
async def delete_message(
    message_id: UUID,
    session: CurrentSession,
    service: MessageServiceDep,
) -> None:
    """Soft delete one's own message."""
    session.require(Capability.SEND_MESSAGES)
    await service.delete_message(message_id)


@router.post(
    "/messages/{message_id}/read",
    response_model=MessageResponse,
    summary="Mark message read",
)
async def mark_message_read(
    message_id: UUID,
    service: MessageServiceDep,
) -> MessageResponse:
    return await service.mark_message_read(message_id)
