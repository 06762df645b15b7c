"""Date manipulation utilities"""

from datetime import date, datetime, time, timedelta, timezone

from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months (Jan 31 + 1 -> Feb 28/29)"""
    return from_date + relativedelta(months=months)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def overdue_cutoff(now: datetime) -> date:
    """
    First due date that is not yet past due at `now`.

    A due date stands for 00:00 UTC of that day, so an installment is past due
    once that instant is behind `now`.
    Installments with due_date < overdue_cutoff(now) are past due.
    """
    now = as_utc(now).astimezone(timezone.utc)
    today = now.date()
    if now > datetime.combine(today, time.min, tzinfo=timezone.utc):
        return today + timedelta(days=1)
    return today
