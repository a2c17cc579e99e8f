"""Availability calculation for the scheduling UI.

Bookable slots are derived, never stored: a fixed canonical list of clinic
times is filtered for weekends, for times that are already too close to
``now`` and, in the overview variant, for simulated existing bookings drawn
from an injected random source.
"""

import random
from datetime import date, datetime, time, timedelta

from surgery_support.schemas.availability import AvailabilitySlot

OPENING_HOUR = 9
CLOSING_HOUR = 17
SLOT_MINUTES = 30
# Times closer than this to "now" cannot be booked for today
MINIMUM_NOTICE = timedelta(minutes=30)

WEEKEND = (5, 6)


def generate_time_slots() -> list[str]:
    """Canonical clinic times, 09:00 to 17:00 inclusive every 30 minutes."""
    slots = []
    for hour in range(OPENING_HOUR, CLOSING_HOUR + 1):
        for minute in range(0, 60, SLOT_MINUTES):
            if hour == CLOSING_HOUR and minute > 0:
                break
            slots.append(f"{hour:02d}:{minute:02d}")
    return slots


CANONICAL_TIMES = tuple(generate_time_slots())


def parse_time(value: str) -> time:
    """Parse an ``HH:MM`` clock time."""
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND


def filter_past_times(day: date, times: list[str], now: datetime) -> list[str]:
    """Drop times that are not strictly later than ``now`` plus the minimum notice."""
    if day != now.date():
        return list(times)
    cutoff = now.replace(tzinfo=None) + MINIMUM_NOTICE
    return [t for t in times if datetime.combine(day, parse_time(t)) > cutoff]


class AvailabilityCalculator:
    """Produces bookable (date, time) pairs.

    Args:
        rng: Random source used to simulate existing bookings. Pass a seeded
            ``random.Random`` for reproducible output.
        booked_probability: Chance that a canonical time counts as booked.
    """

    def __init__(self, rng: random.Random | None = None, booked_probability: float = 0.3):
        if not 0.0 <= booked_probability <= 1.0:
            raise ValueError("booked_probability must be between 0 and 1")
        self.rng = rng or random.Random()
        self.booked_probability = booked_probability

    def generate_available_slots(
        self,
        horizon_days: int = 30,
        now: datetime | None = None,
        include_empty_days: bool = False,
    ) -> list[AvailabilitySlot]:
        """
        Build the slot list for the days following ``now``.

        Args:
            horizon_days: Number of days after ``now`` to consider
            now: Reference timestamp, defaults to the local clock
            include_empty_days: Keep weekdays whose times were all booked

        Returns:
            One slot per retained weekday, in date order
        """
        now = now or datetime.now()
        today = now.date()
        slots = []

        for offset in range(1, horizon_days + 1):
            day = today + timedelta(days=offset)
            if is_weekend(day):
                continue

            times = [t for t in CANONICAL_TIMES if self.rng.random() >= self.booked_probability]
            times = filter_past_times(day, times, now)

            if times or include_empty_days:
                slots.append(AvailabilitySlot(date=day, times=times))

        return slots

    def fallback_times_for_date(self, day: date, now: datetime | None = None) -> list[str]:
        """Canonical times for ``day`` without simulated bookings; may be empty."""
        now = now or datetime.now()
        return filter_past_times(day, list(CANONICAL_TIMES), now)
