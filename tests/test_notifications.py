"""Tests for notification composition, dispatch and preferences."""

from datetime import date
from uuid import uuid4

import pytest
from httpx import AsyncClient

from surgery_support.core.exceptions import (
    NotificationDeliveryError,
    ServiceUnavailableException,
)
from surgery_support.core.redis_client import CacheManager
from surgery_support.schemas.notifications import (
    AppointmentNotification,
    NotificationPreferencesUpdate,
    NotificationRecipient,
    NotificationType,
)
from surgery_support.services.notification_service import (
    NotificationPreferenceService,
    NotificationService,
)


def make_notification(kind: NotificationType = NotificationType.RESCHEDULE, **overrides):
    data = {
        "type": kind,
        "appointment_id": uuid4(),
        "appointment_title": "Post-op check",
        "old_date": date(2026, 10, 20),
        "old_time": "10:00",
        "new_date": date(2026, 10, 22),
        "new_time": "14:30",
        "patient_name": "Sofia Martins",
        "provider_name": "Dr. Emma Laurent",
        "location": "Surgical Clinic, Room 3",
    }
    data.update(overrides)
    return AppointmentNotification(**data)


@pytest.fixture
def service() -> NotificationService:
    return NotificationService(batch_delay=0, email_delay=0, sms_delay=0)


def test_email_subject_per_type():
    assert (
        NotificationService.get_email_subject(make_notification())
        == "Appointment rescheduled - Post-op check"
    )
    assert NotificationService.get_email_subject(
        make_notification(NotificationType.CANCEL)
    ).startswith("Appointment cancelled")
    assert NotificationService.get_email_subject(
        make_notification(NotificationType.NEW)
    ).startswith("New appointment")


def test_reschedule_email_body_shows_both_slots():
    recipient = NotificationRecipient(id="1", name="Dr. Emma Laurent", role="Nurse")
    body = NotificationService.get_email_body(make_notification(notes="Bring scans"), recipient)

    assert body.startswith("Hello Dr. Emma Laurent,")
    assert "Previous date: 20/10/2026 at 10:00" in body
    assert "New date: 22/10/2026 at 14:30" in body
    assert "Notes: Bring scans" in body


def test_cancel_email_body_omits_reason_without_notes():
    recipient = NotificationRecipient(id="1", name="Sofia", role="Patient")
    body = NotificationService.get_email_body(make_notification(NotificationType.CANCEL), recipient)

    assert "APPOINTMENT CANCELLED" in body
    assert "Reason:" not in body


def test_sms_messages():
    assert "moved to 22/10/2026 at 14:30" in NotificationService.get_sms_message(
        make_notification()
    )
    assert "has been cancelled" in NotificationService.get_sms_message(
        make_notification(NotificationType.CANCEL)
    )
    assert "Reminder" in NotificationService.get_sms_message(
        make_notification(NotificationType.REMINDER)
    )


@pytest.mark.asyncio
async def test_send_counts_recipients_not_messages(service, monkeypatch):
    emails, texts = [], []

    async def fake_email(recipient, notification):
        emails.append(recipient.email)

    async def fake_sms(recipient, notification):
        texts.append(recipient.phone)

    monkeypatch.setattr(service, "_send_email", fake_email)
    monkeypatch.setattr(service, "_send_sms", fake_sms)

    recipients = [
        NotificationRecipient(
            id="1", name="Emma", email="emma@surgerysupport.io", phone="+4670", role="Nurse"
        ),
        NotificationRecipient(id="2", name="Nina", email="nina@surgerysupport.io", role="Nurse"),
        NotificationRecipient(id="3", name="Unknown provider", role="provider"),
    ]

    result = await service.send_appointment_notification(make_notification(), recipients)

    assert result.success is True
    assert result.sent_to == 3
    assert sorted(emails) == ["emma@surgerysupport.io", "nina@surgerysupport.io"]
    assert texts == ["+4670"]


@pytest.mark.asyncio
async def test_send_with_no_recipients(service):
    result = await service.send_appointment_notification(make_notification(), [])
    assert result.sent_to == 0


@pytest.mark.asyncio
async def test_send_failure_is_wrapped(service, monkeypatch):
    async def broken_email(recipient, notification):
        raise ConnectionError("smtp unreachable")

    monkeypatch.setattr(service, "_send_email", broken_email)
    recipient = NotificationRecipient(
        id="1", name="Emma", email="emma@surgerysupport.io", role="Nurse"
    )

    with pytest.raises(NotificationDeliveryError) as exc_info:
        await service.send_appointment_notification(make_notification(), [recipient])

    assert exc_info.value.message == "Failed to send notifications"
    assert exc_info.value.status_code == 502


def test_preferences_default_when_nothing_stored(fake_redis):
    preferences = NotificationPreferenceService(CacheManager(fake_redis)).get_preferences(uuid4())

    assert preferences.email is True
    assert preferences.sms is True
    assert preferences.push is False


def test_preferences_update_merges_and_stores(fake_redis):
    user_id = uuid4()
    service = NotificationPreferenceService(CacheManager(fake_redis))

    service.update_preferences(user_id, NotificationPreferencesUpdate(sms=False))
    updated = service.update_preferences(user_id, NotificationPreferencesUpdate(push=True))

    assert updated.sms is False
    assert updated.push is True
    assert service.get_preferences(user_id) == updated
    key, _ = fake_redis.set.call_args.args
    assert key == f"surgery_support:notification_preferences:{user_id}"
    fake_redis.setex.assert_not_called()


def test_preferences_update_raises_when_redis_is_down(fake_redis):
    fake_redis.set.side_effect = ConnectionError("redis down")
    service = NotificationPreferenceService(CacheManager(fake_redis))

    with pytest.raises(ServiceUnavailableException) as exc_info:
        service.update_preferences(uuid4(), NotificationPreferencesUpdate(email=False))

    assert exc_info.value.status_code == 503
    assert exc_info.value.message == "Could not save notification preferences"


@pytest.mark.asyncio
async def test_preferences_endpoints(client: AsyncClient, patient_headers: dict, patient) -> None:
    response = await client.get("/api/v1/notifications/preferences", headers=patient_headers)
    assert response.status_code == 200
    assert response.json()["user_id"] == str(patient)
    assert response.json()["sms"] is True

    response = await client.put(
        "/api/v1/notifications/preferences",
        json={"sms": False, "reminder_notifications": False},
        headers=patient_headers,
    )
    assert response.status_code == 200
    assert response.json()["sms"] is False

    response = await client.get("/api/v1/notifications/preferences", headers=patient_headers)
    assert response.json()["sms"] is False
    assert response.json()["reminder_notifications"] is False
    assert response.json()["email"] is True


@pytest.mark.asyncio
async def test_preferences_reject_unknown_fields(
    client: AsyncClient, patient_headers: dict
) -> None:
    response = await client.put(
        "/api/v1/notifications/preferences",
        json={"fax": True},
        headers=patient_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_preferences_update_returns_503_when_not_saved(
    client: AsyncClient, patient_headers: dict, fake_redis
) -> None:
    fake_redis.set.side_effect = ConnectionError("redis down")

    response = await client.put(
        "/api/v1/notifications/preferences",
        json={"email": False},
        headers=patient_headers,
    )

    assert response.status_code == 503
    assert response.json()["message"] == "Could not save notification preferences"

    response = await client.get("/api/v1/notifications/preferences", headers=patient_headers)
    assert response.json()["email"] is True
