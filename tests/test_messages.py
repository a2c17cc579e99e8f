"""Tests for conversations and messages."""

import pytest
from httpx import AsyncClient

from surgery_support.core.exceptions import BadRequestException, ForbiddenException
from surgery_support.schemas.messages import ConversationCreate, MessageCreate, MessageUpdate
from surgery_support.services.message_service import MessageService


@pytest.mark.asyncio
async def test_conversation_summary_tracks_latest_and_unread(db_session, patient, nurse):
    as_patient = MessageService(db_session, user_id=patient, owner_id=patient)
    as_nurse = MessageService(db_session, user_id=nurse)

    conversation = await as_patient.create_conversation(
        ConversationCreate(subject="Wound dressing")
    )
    [empty] = await as_patient.list_conversations()
    assert empty.message_count == 0
    assert empty.latest_message == "No messages yet"
    assert empty.latest_message_time == empty.created_at
    assert empty.has_unread is False

    await as_patient.send_message(conversation.id, MessageCreate(content="Is some redness normal?"))
    await as_nurse.send_message(
        conversation.id, MessageCreate(content="Please send a photo.", urgent=True)
    )

    [summary] = await as_patient.list_conversations()
    assert summary.message_count == 2
    assert summary.latest_message == "Please send a photo."
    assert summary.has_unread is True

    [staff_view] = await as_nurse.list_conversations()
    assert staff_view.has_unread is True

    assert await as_patient.mark_conversation_read(conversation.id) == 1
    [summary] = await as_patient.list_conversations()
    assert summary.has_unread is False
    assert await as_patient.mark_conversation_read(conversation.id) == 0


@pytest.mark.asyncio
async def test_sending_bumps_conversation_order(db_session, patient):
    service = MessageService(db_session, user_id=patient, owner_id=patient)
    older = await service.create_conversation(ConversationCreate(subject="Pain relief"))
    newer = await service.create_conversation(ConversationCreate(subject="Sick note"))

    assert [c.id for c in await service.list_conversations()] == [newer.id, older.id]

    await service.send_message(older.id, MessageCreate(content="Can I take ibuprofen?"))

    assert [c.id for c in await service.list_conversations()] == [older.id, newer.id]


@pytest.mark.asyncio
async def test_patient_cannot_open_conversation_for_someone_else(
    db_session, patient, other_patient
):
    service = MessageService(db_session, user_id=patient, owner_id=patient)

    with pytest.raises(ForbiddenException):
        await service.create_conversation(ConversationCreate(patient_id=other_patient))


@pytest.mark.asyncio
async def test_staff_must_name_the_patient(db_session, nurse):
    with pytest.raises(BadRequestException):
        await MessageService(db_session, user_id=nurse).create_conversation(ConversationCreate())


@pytest.mark.asyncio
async def test_only_sender_edits_or_deletes(db_session, patient, nurse):
    as_patient = MessageService(db_session, user_id=patient, owner_id=patient)
    as_nurse = MessageService(db_session, user_id=nurse)
    conversation = await as_patient.create_conversation(ConversationCreate())
    message = await as_patient.send_message(conversation.id, MessageCreate(content="Hello"))

    with pytest.raises(ForbiddenException):
        await as_nurse.update_message(message.id, MessageUpdate(content="Edited"))
    with pytest.raises(ForbiddenException):
        await as_nurse.delete_message(message.id)

    edited = await as_patient.update_message(message.id, MessageUpdate(urgent=True))
    assert edited.urgent is True
    assert edited.content == "Hello"

    await as_patient.delete_message(message.id)
    assert await as_patient.list_messages(conversation.id) == []


@pytest.mark.asyncio
async def test_message_thread_endpoints(
    client: AsyncClient, patient_headers: dict, nurse_headers: dict, patient, nurse
) -> None:
    response = await client.post(
        "/api/v1/conversations", json={"subject": "Stitches"}, headers=patient_headers
    )
    assert response.status_code == 201
    conversation = response.json()
    assert conversation["patient_id"] == str(patient)

    response = await client.post(
        f"/api/v1/conversations/{conversation['id']}/messages",
        json={"content": "When are my stitches removed?"},
        headers=patient_headers,
    )
    assert response.status_code == 201
    question = response.json()
    assert question["sender"]["full_name"] == "Sofia Martins"
    assert question["sender"]["role"] == "Patient"
    assert question["read_by"] == []

    await client.post(
        f"/api/v1/conversations/{conversation['id']}/messages",
        json={"content": "Ten days after surgery."},
        headers=nurse_headers,
    )

    response = await client.get(
        f"/api/v1/conversations/{conversation['id']}/messages", headers=nurse_headers
    )
    thread = response.json()
    assert [m["content"] for m in thread] == [
        "When are my stitches removed?",
        "Ten days after surgery.",
    ]
    assert thread[1]["sender"]["role"] == "Nurse"

    response = await client.post(
        f"/api/v1/messages/{question['id']}/read", headers=nurse_headers
    )
    assert response.json()["read_by"] == [str(nurse)]

    response = await client.post(
        f"/api/v1/conversations/{conversation['id']}/read", headers=patient_headers
    )
    assert response.json() == {"marked": 1}

    response = await client.get("/api/v1/conversations", headers=patient_headers)
    assert response.json()[0]["has_unread"] is False
    assert response.json()[0]["latest_message"] == "Ten days after surgery."


@pytest.mark.asyncio
async def test_patient_cannot_read_other_patients_conversation(
    client: AsyncClient, patient_headers: dict, nurse_headers: dict, other_patient
) -> None:
    response = await client.post(
        "/api/v1/conversations",
        json={"patient_id": str(other_patient), "subject": "Discharge"},
        headers=nurse_headers,
    )
    conversation_id = response.json()["id"]

    response = await client.get(
        f"/api/v1/conversations/{conversation_id}/messages", headers=patient_headers
    )
    assert response.status_code == 403

    response = await client.post(
        f"/api/v1/conversations/{conversation_id}/messages",
        json={"content": "Hi"},
        headers=patient_headers,
    )
    assert response.status_code == 403

    response = await client.get("/api/v1/conversations", headers=patient_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_sales_cannot_message(client: AsyncClient, sales_headers: dict, patient) -> None:
    response = await client.post(
        "/api/v1/conversations",
        json={"patient_id": str(patient)},
        headers=sales_headers,
    )
    assert response.status_code == 403
