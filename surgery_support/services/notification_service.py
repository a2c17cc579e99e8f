"""Notification service for appointment emails and SMS.

Delivery is simulated: each message is written to the structured log after a
short artificial delay. No retry, queueing or per-recipient failure tracking
is done; any exception during a fan-out is reported as a single
``NotificationDeliveryError``.
"""

import asyncio
from datetime import UTC, date, datetime
from uuid import UUID

import structlog

from surgery_support.config import settings
from surgery_support.core.exceptions import (
    NotificationDeliveryError,
    ServiceUnavailableException,
)
from surgery_support.core.redis_client import CacheManager
from surgery_support.schemas.notifications import (
    AppointmentNotification,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    NotificationRecipient,
    NotificationResult,
    NotificationType,
)

logger = structlog.get_logger(__name__)

SIGNATURE = "Kind regards,\nThe Surgery Support team"
SMS_PREFIX = "Surgery Support:"


def _format_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


class NotificationService:
    """Composes and "sends" appointment notifications."""

    def __init__(
        self,
        batch_delay: float | None = None,
        email_delay: float | None = None,
        sms_delay: float | None = None,
    ):
        """Initialize with simulated latencies, defaulting to settings."""
        self.batch_delay = settings.notification_batch_delay if batch_delay is None else batch_delay
        self.email_delay = settings.email_send_delay if email_delay is None else email_delay
        self.sms_delay = settings.sms_send_delay if sms_delay is None else sms_delay

    async def send_appointment_notification(
        self,
        notification: AppointmentNotification,
        recipients: list[NotificationRecipient],
    ) -> NotificationResult:
        """
        Send a notification to every recipient by email and, when known, SMS.

        Args:
            notification: Appointment event
            recipients: People to notify

        Returns:
            Fan-out result; ``sent_to`` counts recipients, not messages

        Raises:
            NotificationDeliveryError: If anything in the fan-out fails
        """
        try:
            await asyncio.sleep(self.batch_delay)

            sends = [
                self._send_email(recipient, notification)
                for recipient in recipients
                if recipient.email
            ]
            sends.extend(
                self._send_sms(recipient, notification)
                for recipient in recipients
                if recipient.phone
            )
            await asyncio.gather(*sends)

            self._log_notification(notification, recipients)
        except Exception as e:
            logger.error(
                "notification_dispatch_failed",
                appointment_id=str(notification.appointment_id),
                error=str(e),
            )
            raise NotificationDeliveryError() from e

        return NotificationResult(success=True, sent_to=len(recipients))

    async def _send_email(
        self,
        recipient: NotificationRecipient,
        notification: AppointmentNotification,
    ) -> None:
        subject = self.get_email_subject(notification)
        body = self.get_email_body(notification, recipient)

        logger.info(
            "email_sent",
            to=recipient.email,
            subject=subject,
            preview=body.strip()[:100],
        )
        await asyncio.sleep(self.email_delay)

    async def _send_sms(
        self,
        recipient: NotificationRecipient,
        notification: AppointmentNotification,
    ) -> None:
        logger.info("sms_sent", to=recipient.phone, message=self.get_sms_message(notification))
        await asyncio.sleep(self.sms_delay)

    @staticmethod
    def get_email_subject(notification: AppointmentNotification) -> str:
        """Subject line for an appointment event."""
        prefix = {
            NotificationType.RESCHEDULE: "Appointment rescheduled",
            NotificationType.CANCEL: "Appointment cancelled",
            NotificationType.REMINDER: "Appointment reminder",
            NotificationType.NEW: "New appointment",
        }.get(notification.type, "Appointment notification")
        return f"{prefix} - {notification.appointment_title}"

    @staticmethod
    def get_email_body(
        notification: AppointmentNotification,
        recipient: NotificationRecipient,
    ) -> str:
        """Plain-text email body for an appointment event."""
        base_info = (
            f"Hello {recipient.name},\n\n"
            "Here are the details of your appointment:\n\n"
            f"Appointment: {notification.appointment_title}\n"
            f"With: {notification.provider_name}\n"
            f"Location: {notification.location}\n"
            f"Patient: {notification.patient_name}\n"
        )
        old_slot = f"{_format_date(notification.old_date)} at {notification.old_time}"
        new_slot = f"{_format_date(notification.new_date)} at {notification.new_time}"

        if notification.type == NotificationType.RESCHEDULE:
            notes = f"Notes: {notification.notes}\n\n" if notification.notes else ""
            return (
                f"{base_info}\nAPPOINTMENT RESCHEDULED\n\n"
                f"Previous date: {old_slot}\n"
                f"New date: {new_slot}\n\n"
                f"{notes}"
                "Please update your calendar.\n\n"
                f"{SIGNATURE}\n"
            )

        if notification.type == NotificationType.CANCEL:
            reason = f"Reason: {notification.notes}\n\n" if notification.notes else ""
            return (
                f"{base_info}\nAPPOINTMENT CANCELLED\n\n"
                f"Cancelled date: {old_slot}\n\n"
                f"{reason}"
                "Please contact us if you need to book a new date.\n\n"
                f"{SIGNATURE}\n"
            )

        if notification.type == NotificationType.REMINDER:
            instructions = f"Instructions: {notification.notes}\n\n" if notification.notes else ""
            return (
                f"{base_info}\nAPPOINTMENT REMINDER\n\n"
                f"Date: {new_slot}\n\n"
                f"{instructions}"
                "Don't forget your appointment!\n\n"
                f"{SIGNATURE}\n"
            )

        return base_info

    @staticmethod
    def get_sms_message(notification: AppointmentNotification) -> str:
        """Short SMS text for an appointment event."""
        title = notification.appointment_title

        if notification.type == NotificationType.RESCHEDULE:
            return (
                f'{SMS_PREFIX} Your appointment "{title}" has been moved to '
                f"{_format_date(notification.new_date)} at {notification.new_time}. "
                f"With {notification.provider_name}."
            )
        if notification.type == NotificationType.CANCEL:
            return (
                f'{SMS_PREFIX} Your appointment "{title}" on '
                f"{_format_date(notification.old_date)} has been cancelled. "
                "Contact us to book a new date."
            )
        if notification.type == NotificationType.REMINDER:
            return (
                f'{SMS_PREFIX} Reminder: "{title}" tomorrow at {notification.new_time} '
                f"with {notification.provider_name}. Location: {notification.location}"
            )
        return f'{SMS_PREFIX} Update about your appointment "{title}".'

    @staticmethod
    def _log_notification(
        notification: AppointmentNotification,
        recipients: list[NotificationRecipient],
    ) -> None:
        logger.info(
            "notification_logged",
            timestamp=datetime.now(UTC).isoformat(),
            type="notification_sent",
            appointment_id=str(notification.appointment_id),
            notification_type=notification.type.value,
            recipient_count=len(recipients),
            recipients=[{"id": r.id, "email": r.email, "role": r.role} for r in recipients],
        )


class NotificationPreferenceService:
    """Per-user notification preferences kept in the Redis cache."""

    def __init__(self, cache: CacheManager):
        """Initialize with a cache manager."""
        self.cache = cache

    @staticmethod
    def _cache_key(user_id: UUID) -> str:
        return f"notification_preferences:{user_id}"

    def get_preferences(self, user_id: UUID) -> NotificationPreferences:
        """Stored preferences, or the defaults when none are stored."""
        stored = self.cache.get_json(self._cache_key(user_id))
        if not isinstance(stored, dict):
            return NotificationPreferences()
        return NotificationPreferences.model_validate(stored)

    def update_preferences(
        self, user_id: UUID, changes: NotificationPreferencesUpdate
    ) -> NotificationPreferences:
        """
        Merge ``changes`` over the current preferences and store them.

        Preferences are kept until overwritten; they do not expire.

        Raises:
            ServiceUnavailableException: If the cache did not accept the write
        """
        current = self.get_preferences(user_id)
        updated = current.model_copy(update=changes.model_dump(exclude_none=True))

        if not self.cache.set_json(self._cache_key(user_id), updated.model_dump()):
            logger.error("notification_preferences_not_saved", user_id=str(user_id))
            raise ServiceUnavailableException("Could not save notification preferences")

        logger.info(
            "notification_preferences_updated",
            user_id=str(user_id),
            changes=changes.model_dump(exclude_none=True),
        )
        return updated
