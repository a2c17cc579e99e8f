"""Reschedule dialog state machine.

The dialog walks ``closed -> date_selected -> time_selected -> submitting``
and ends in ``success`` or ``error``. Slot validation happens locally before
the reschedule callback is awaited; only a confirmed write triggers the
delayed, fire-and-forget provider notification.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta
from enum import Enum
from uuid import UUID

import structlog

from surgery_support.core.exceptions import AppException, RescheduleValidationError
from surgery_support.schemas.appointments import AppointmentResponse
from surgery_support.schemas.availability import AvailabilitySlot
from surgery_support.services.availability_service import AvailabilityCalculator, is_weekend

logger = structlog.get_logger(__name__)

RescheduleCallback = Callable[[UUID, date, str], Awaitable[object]]
NotificationCallback = Callable[[UUID, list[str]], Awaitable[None]]

SELECT_DATE_AND_TIME = "Please select a date and time"
SLOT_NOT_AVAILABLE = "This slot is not available"
SAME_SLOT = "Please select a different date or time"
DATE_NOT_AVAILABLE = "This date is not available for appointments"
RESCHEDULE_FAILED = "Error rescheduling appointment"

# Strong references for fire-and-forget tasks; the loop only keeps weak ones
_background_tasks: set[asyncio.Task] = set()


class DialogState(str, Enum):
    """Reschedule dialog states."""

    CLOSED = "closed"
    DATE_SELECTED = "date_selected"
    TIME_SELECTED = "time_selected"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


class RescheduleDialog:
    """Date/time picker bound to one appointment.

    Args:
        appointment: Appointment being moved
        on_reschedule: Awaited with ``(appointment_id, new_date, new_time)``
        on_notification_sent: Awaited with ``(appointment_id, participants)``
            once the write succeeded, after ``notification_delay`` seconds
        calculator: Source of fallback times when no slot list matches
        available_slots: Externally supplied slots, take precedence per date
        booking_horizon_days: Latest bookable day, counted from today
        notification_delay: Seconds before the notification fires
        confirmation_delay: Seconds the success panel stays before reset
        clock: Returns the current local time
    """

    def __init__(
        self,
        appointment: AppointmentResponse,
        on_reschedule: RescheduleCallback | None = None,
        on_notification_sent: NotificationCallback | None = None,
        calculator: AvailabilityCalculator | None = None,
        available_slots: list[AvailabilitySlot] | None = None,
        booking_horizon_days: int = 90,
        notification_delay: float = 1.0,
        confirmation_delay: float = 2.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.appointment = appointment
        self.on_reschedule = on_reschedule
        self.on_notification_sent = on_notification_sent
        self.calculator = calculator or AvailabilityCalculator()
        self.available_slots = available_slots or []
        self.booking_horizon_days = booking_horizon_days
        self.notification_delay = notification_delay
        self.confirmation_delay = confirmation_delay
        self.clock = clock

        self.state = DialogState.CLOSED
        self.selected_date: date | None = None
        self.selected_time: str | None = None
        self.error: str | None = None
        self.notification_task: asyncio.Task | None = None
        self._close_handle: asyncio.TimerHandle | None = None

    @property
    def is_loading(self) -> bool:
        return self.state == DialogState.SUBMITTING

    def is_date_available(self, day: date) -> bool:
        """Weekdays from today up to the booking horizon."""
        today = self.clock().date()
        if day < today:
            return False
        if is_weekend(day):
            return False
        return day <= today + timedelta(days=self.booking_horizon_days)

    def get_available_times_for_date(self, day: date) -> list[str]:
        """Supplied slot times for ``day``, else the calculator's fallback."""
        for slot in self.available_slots:
            if slot.date == day:
                return list(slot.times)
        return self.calculator.fallback_times_for_date(day, self.clock())

    def select_date(self, day: date) -> None:
        """Pick a date; any previously chosen time is cleared."""
        if self.is_loading:
            return
        if not self.is_date_available(day):
            raise RescheduleValidationError(DATE_NOT_AVAILABLE)

        self.selected_date = day
        self.selected_time = None
        self.error = None
        self.state = DialogState.DATE_SELECTED

    def select_time(self, value: str) -> None:
        """Pick a time for the selected date."""
        if self.is_loading:
            return
        if self.selected_date is None:
            raise RescheduleValidationError(SELECT_DATE_AND_TIME)

        self.selected_time = value
        self.error = None
        self.state = DialogState.TIME_SELECTED

    def validate_new_slot(self) -> None:
        """
        Check the selection before anything is written.

        Raises:
            RescheduleValidationError: When the selection is incomplete, not
                in the available times, or identical to the current slot
        """
        if not self.selected_date or not self.selected_time:
            raise RescheduleValidationError(SELECT_DATE_AND_TIME)

        if self.selected_time not in self.get_available_times_for_date(self.selected_date):
            raise RescheduleValidationError(SLOT_NOT_AVAILABLE)

        if (
            self.selected_date == self.appointment.date
            and self.selected_time == self.appointment.time
        ):
            raise RescheduleValidationError(SAME_SLOT)

    async def confirm(self) -> None:
        """
        Validate and submit the new slot.

        The error message is kept on the dialog and the exception re-raised so
        the caller can surface it; the dialog stays open for another attempt.
        """
        if self.is_loading:
            return

        try:
            self.validate_new_slot()
        except RescheduleValidationError as e:
            self.error = e.message
            raise

        new_date, new_time = self.selected_date, self.selected_time
        self.state = DialogState.SUBMITTING
        self.error = None

        try:
            if self.on_reschedule:
                await self.on_reschedule(self.appointment.id, new_date, new_time)
        except Exception as e:
            self.state = DialogState.ERROR
            self.error = e.message if isinstance(e, AppException) else (str(e) or RESCHEDULE_FAILED)
            logger.warning(
                "reschedule_failed",
                appointment_id=str(self.appointment.id),
                error=self.error,
            )
            raise

        self.state = DialogState.SUCCESS
        self.notification_task = self._schedule_notification()
        self._schedule_close()

    def close(self) -> None:
        """Close the dialog, discarding any uncommitted selection."""
        if self._close_handle is not None:
            self._close_handle.cancel()
            self._close_handle = None
        self.state = DialogState.CLOSED
        self.selected_date = None
        self.selected_time = None
        self.error = None

    def _schedule_notification(self) -> asyncio.Task | None:
        if self.on_notification_sent is None:
            return None

        task = asyncio.create_task(self._notify_after_delay())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return task

    async def _notify_after_delay(self) -> None:
        await asyncio.sleep(self.notification_delay)
        participants = [self.appointment.provider]
        try:
            await self.on_notification_sent(self.appointment.id, participants)
        except Exception as e:
            # Fire-and-forget: the reschedule itself already succeeded
            logger.error(
                "reschedule_notification_failed",
                appointment_id=str(self.appointment.id),
                error=str(e),
            )

    def _schedule_close(self) -> None:
        loop = asyncio.get_running_loop()
        self._close_handle = loop.call_later(self.confirmation_delay, self.close)
