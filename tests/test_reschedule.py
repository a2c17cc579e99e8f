"""Tests for the reschedule dialog state machine."""

import asyncio
from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from surgery_support.core.exceptions import ConflictException, RescheduleValidationError
from surgery_support.schemas.appointments import AppointmentResponse
from surgery_support.schemas.availability import AvailabilitySlot
from surgery_support.services.availability_service import CANONICAL_TIMES
from surgery_support.services.reschedule_service import (
    RESCHEDULE_FAILED,
    SAME_SLOT,
    SELECT_DATE_AND_TIME,
    SLOT_NOT_AVAILABLE,
    DialogState,
    RescheduleDialog,
)

# Friday morning
NOW = datetime(2026, 10, 16, 9, 0)
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
SATURDAY = date(2026, 10, 17)


@pytest.fixture
def appointment() -> AppointmentResponse:
    stamp = datetime(2026, 10, 1, tzinfo=UTC)
    return AppointmentResponse(
        id=uuid4(),
        user_id=uuid4(),
        title="Post-op check",
        date=TUESDAY,
        time="10:00",
        type="follow-up",
        provider="Dr. Emma Laurent",
        location="Surgical Clinic, Room 3",
        created_at=stamp,
        updated_at=stamp,
    )


class Recorder:
    """Async callback recording its calls."""

    def __init__(self, error: Exception | None = None):
        self.calls: list[tuple] = []
        self.error = error

    async def __call__(self, *args) -> None:
        self.calls.append(args)
        if self.error is not None:
            raise self.error


def make_dialog(appointment, **kwargs) -> RescheduleDialog:
    kwargs.setdefault("notification_delay", 0)
    kwargs.setdefault("confirmation_delay", 60)
    return RescheduleDialog(appointment, clock=lambda: NOW, **kwargs)


def test_date_availability(appointment):
    dialog = make_dialog(appointment)

    assert dialog.is_date_available(NOW.date())
    assert dialog.is_date_available(MONDAY)
    assert not dialog.is_date_available(NOW.date() - timedelta(days=1))
    assert not dialog.is_date_available(SATURDAY)
    assert not dialog.is_date_available(date(2026, 10, 18))
    assert dialog.is_date_available(NOW.date() + timedelta(days=90))
    assert not dialog.is_date_available(NOW.date() + timedelta(days=91))


def test_supplied_slots_take_precedence(appointment):
    dialog = make_dialog(
        appointment,
        available_slots=[AvailabilitySlot(date=MONDAY, times=["09:00", "14:30"])],
    )
    assert dialog.get_available_times_for_date(MONDAY) == ["09:00", "14:30"]
    assert dialog.get_available_times_for_date(TUESDAY) == list(CANONICAL_TIMES)


def test_fallback_for_today_respects_minimum_notice(appointment):
    dialog = make_dialog(appointment)
    times = dialog.get_available_times_for_date(NOW.date())
    assert "09:30" not in times
    assert times[0] == "10:00"


def test_select_date_rejects_weekend(appointment):
    dialog = make_dialog(appointment)

    with pytest.raises(RescheduleValidationError):
        dialog.select_date(SATURDAY)

    assert dialog.state == DialogState.CLOSED
    assert dialog.selected_date is None


def test_select_date_clears_time(appointment):
    dialog = make_dialog(appointment)
    dialog.select_date(MONDAY)
    dialog.select_time("11:00")
    assert dialog.state == DialogState.TIME_SELECTED

    dialog.select_date(TUESDAY)
    assert dialog.state == DialogState.DATE_SELECTED
    assert dialog.selected_time is None


def test_select_time_requires_date(appointment):
    dialog = make_dialog(appointment)
    with pytest.raises(RescheduleValidationError) as exc_info:
        dialog.select_time("11:00")
    assert exc_info.value.message == SELECT_DATE_AND_TIME


def test_validation_requires_complete_selection(appointment):
    dialog = make_dialog(appointment)
    dialog.select_date(MONDAY)

    with pytest.raises(RescheduleValidationError) as exc_info:
        dialog.validate_new_slot()
    assert exc_info.value.message == SELECT_DATE_AND_TIME


def test_validation_rejects_unavailable_time(appointment):
    dialog = make_dialog(
        appointment,
        available_slots=[AvailabilitySlot(date=MONDAY, times=["09:00"])],
    )
    dialog.select_date(MONDAY)
    dialog.select_time("15:00")

    with pytest.raises(RescheduleValidationError) as exc_info:
        dialog.validate_new_slot()
    assert exc_info.value.message == SLOT_NOT_AVAILABLE


def test_validation_rejects_current_slot(appointment):
    dialog = make_dialog(appointment)
    dialog.select_date(TUESDAY)
    dialog.select_time("10:00")

    with pytest.raises(RescheduleValidationError) as exc_info:
        dialog.validate_new_slot()
    assert exc_info.value.message == SAME_SLOT


def test_unavailable_slot_reported_before_same_slot(appointment):
    dialog = make_dialog(
        appointment,
        available_slots=[AvailabilitySlot(date=TUESDAY, times=["11:00"])],
    )
    dialog.select_date(TUESDAY)
    dialog.select_time("10:00")

    with pytest.raises(RescheduleValidationError) as exc_info:
        dialog.validate_new_slot()
    assert exc_info.value.message == SLOT_NOT_AVAILABLE


@pytest.mark.asyncio
async def test_confirm_success_notifies_provider(appointment):
    on_reschedule = Recorder()
    on_notification_sent = Recorder()
    dialog = make_dialog(
        appointment,
        on_reschedule=on_reschedule,
        on_notification_sent=on_notification_sent,
    )
    dialog.select_date(MONDAY)
    dialog.select_time("14:00")

    await dialog.confirm()

    assert dialog.state == DialogState.SUCCESS
    assert dialog.error is None
    assert on_reschedule.calls == [(appointment.id, MONDAY, "14:00")]

    await dialog.notification_task
    assert on_notification_sent.calls == [(appointment.id, ["Dr. Emma Laurent"])]


@pytest.mark.asyncio
async def test_confirm_validation_error_skips_callback(appointment):
    on_reschedule = Recorder()
    dialog = make_dialog(appointment, on_reschedule=on_reschedule)
    dialog.select_date(TUESDAY)
    dialog.select_time("10:00")

    with pytest.raises(RescheduleValidationError):
        await dialog.confirm()

    assert dialog.error == SAME_SLOT
    assert dialog.state == DialogState.TIME_SELECTED
    assert on_reschedule.calls == []


@pytest.mark.asyncio
async def test_confirm_failure_enters_error_state(appointment):
    conflict = ConflictException("Dr. Emma Laurent already has an appointment")
    on_notification_sent = Recorder()
    dialog = make_dialog(
        appointment,
        on_reschedule=Recorder(error=conflict),
        on_notification_sent=on_notification_sent,
    )
    dialog.select_date(MONDAY)
    dialog.select_time("14:00")

    with pytest.raises(ConflictException):
        await dialog.confirm()

    assert dialog.state == DialogState.ERROR
    assert dialog.error == conflict.message
    assert dialog.notification_task is None
    assert on_notification_sent.calls == []


@pytest.mark.asyncio
async def test_confirm_failure_without_message_uses_fallback(appointment):
    dialog = make_dialog(appointment, on_reschedule=Recorder(error=RuntimeError()))
    dialog.select_date(MONDAY)
    dialog.select_time("14:00")

    with pytest.raises(RuntimeError):
        await dialog.confirm()

    assert dialog.error == RESCHEDULE_FAILED


@pytest.mark.asyncio
async def test_notification_failure_is_contained(appointment):
    dialog = make_dialog(
        appointment,
        on_reschedule=Recorder(),
        on_notification_sent=Recorder(error=RuntimeError("smtp down")),
    )
    dialog.select_date(MONDAY)
    dialog.select_time("14:00")

    await dialog.confirm()
    await dialog.notification_task

    assert dialog.notification_task.exception() is None
    assert dialog.state == DialogState.SUCCESS


@pytest.mark.asyncio
async def test_dialog_closes_after_confirmation_delay(appointment):
    dialog = make_dialog(appointment, on_reschedule=Recorder(), confirmation_delay=0)
    dialog.select_date(MONDAY)
    dialog.select_time("14:00")

    await dialog.confirm()
    await asyncio.sleep(0.01)

    assert dialog.state == DialogState.CLOSED
    assert dialog.selected_date is None
    assert dialog.selected_time is None
