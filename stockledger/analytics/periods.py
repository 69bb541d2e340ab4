"""Takvim ayı ve gün pencereleri (UTC)."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone

from stockledger.models.inventory import parse_timestamp


def month_start(when: datetime) -> datetime:
    when = parse_timestamp(when)
    return datetime(when.year, when.month, 1, tzinfo=timezone.utc)


def add_months(start: datetime, months: int) -> datetime:
    """Ay başına ay ekler/çıkarır (gün her zaman 1 olur)."""
    index = start.year * 12 + (start.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


def month_window(when: datetime) -> tuple[datetime, datetime]:
    """when'in içinde bulunduğu ay için [başlangıç, sonraki ay başı)."""
    start = month_start(when)
    return start, add_months(start, 1)


def day_window(when: datetime) -> tuple[datetime, datetime]:
    when = parse_timestamp(when)
    start = datetime(when.year, when.month, when.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def days_in_month(when: datetime) -> int:
    return calendar.monthrange(when.year, when.month)[1]


def in_window(when: datetime, window: tuple[datetime, datetime]) -> bool:
    return window[0] <= when < window[1]
