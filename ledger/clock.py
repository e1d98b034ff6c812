from __future__ import annotations

from datetime import date, datetime, time

from django.utils import timezone


class SystemClock:
    """Reads the wall clock in the project's time zone."""

    def now(self) -> datetime:
        return timezone.now()

    def today(self) -> date:
        return timezone.localdate()


class FixedClock:
    """Always reports the same instant. Used by tests and replays."""

    def __init__(self, today: date, now: datetime | None = None):
        self._today = today
        self._now = now or timezone.make_aware(datetime.combine(today, time(12, 0)))

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._today
