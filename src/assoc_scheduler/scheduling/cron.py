"""Cron synthesis and translation.

Pure functions behind the strategy manager and the trigger engine:

``resolve_cron_expression(strategy)``
    Maps the structured strategy fields to a 6-field Quartz-style
    expression ``sec min hour day-of-month month day-of-week``::

        CRON        stored expression, unchanged
        FIXED_RATE  0 0/{minutes} * * * ?     (interval >= 60s, minutes = interval // 60)
                    0/{seconds} * * * * ?     (interval < 60s)
        DAILY       {s} {m} {h} * * ?
        WEEKLY      {s} {m} {h} ? * {DAY,DAY,...}

    FIXED_RATE truncates to whole minutes: 90s becomes every minute, the
    30s remainder is dropped.

``build_cron_trigger(expression, timezone)``
    Turns such an expression (or a plain 5-field crontab) into an
    APScheduler ``CronTrigger``.  ``?`` becomes ``*`` and numeric weekdays
    become weekday names.  The two forms number weekdays differently::

        6 or 7 fields (Quartz)   1=SUN 2=MON ... 7=SAT
        5 fields (crontab)       0=SUN 1=MON ... 6=SAT, 7=SUN

``last_fire_time(trigger, at)``
    The latest time at or before *at* that a ``CronTrigger`` fires.

Tags:
    scheduling, cron, quartz, apscheduler

Doc-Types:
    api-reference
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger

from assoc_scheduler.errors import ConfigurationError
from assoc_scheduler.models import ScheduleStrategy, ScheduleType

_QUARTZ_WEEKDAYS = {
    1: "sun",
    2: "mon",
    3: "tue",
    4: "wed",
    5: "thu",
    6: "fri",
    7: "sat",
}
_CRONTAB_WEEKDAYS = {
    0: "sun",
    1: "mon",
    2: "tue",
    3: "wed",
    4: "thu",
    5: "fri",
    6: "sat",
    7: "sun",
}
# APScheduler orders weekdays from Monday
_WEEK_ORDER = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]

_LOOKBACK = (
    timedelta(minutes=1),
    timedelta(hours=1),
    timedelta(days=1),
    timedelta(days=8),
    timedelta(days=32),
    timedelta(days=367),
)


# ---------------------------------------------------------------------------
# Strategy → expression
# ---------------------------------------------------------------------------


def resolve_cron_expression(strategy: ScheduleStrategy) -> str:
    """Derive the cron expression for *strategy*.

    Raises:
        ConfigurationError: required fields for the schedule type are missing
    """
    schedule_type = strategy.schedule_type
    if schedule_type is None:
        raise ConfigurationError("Schedule type is required")

    try:
        schedule_type = ScheduleType(schedule_type)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown schedule type: {schedule_type!r}", cause=exc) from exc

    if schedule_type is ScheduleType.CRON:
        if not strategy.cron_expression or not strategy.cron_expression.strip():
            raise ConfigurationError("CRON strategies require a cron expression")
        return strategy.cron_expression.strip()
    if schedule_type is ScheduleType.FIXED_RATE:
        return _fixed_rate_cron(strategy)
    if schedule_type is ScheduleType.DAILY:
        return _daily_cron(strategy)
    return _weekly_cron(strategy)


def _fixed_rate_cron(strategy: ScheduleStrategy) -> str:
    interval = strategy.interval_seconds
    if interval is None or interval <= 0:
        raise ConfigurationError(
            "FIXED_RATE strategies require a positive interval_seconds"
        ).with_context(interval_seconds=interval)

    if interval >= 60:
        minutes = interval // 60
        if minutes > 59:
            raise ConfigurationError(
                "FIXED_RATE interval must be under one hour; use a DAILY or CRON strategy"
            ).with_context(interval_seconds=interval)
        return f"0 0/{minutes} * * * ?"
    return f"0/{interval} * * * * ?"


def _daily_cron(strategy: ScheduleStrategy) -> str:
    start = strategy.start_time
    if start is None:
        raise ConfigurationError("DAILY strategies require a start_time")
    return f"{start.second} {start.minute} {start.hour} * * ?"


def _weekly_cron(strategy: ScheduleStrategy) -> str:
    start = strategy.start_time
    if start is None:
        raise ConfigurationError("WEEKLY strategies require a start_time")
    days = strategy.weekdays
    if not days:
        raise ConfigurationError("WEEKLY strategies require at least one day of week")
    return f"{start.second} {start.minute} {start.hour} ? * {','.join(days)}"


# ---------------------------------------------------------------------------
# Expression → APScheduler trigger
# ---------------------------------------------------------------------------


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the zone for *name*, or None for the system default."""
    if not name or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone: {name!r}", cause=exc) from exc


def build_cron_trigger(expression: str, timezone: tzinfo | None = None) -> CronTrigger:
    """Translate a Quartz-style (or 5-field crontab) expression to a CronTrigger.

    Raises:
        ConfigurationError: the expression is empty or malformed
    """
    if not expression or not expression.strip():
        raise ConfigurationError("Cron expression is empty")

    fields = expression.split()
    weekdays = _QUARTZ_WEEKDAYS
    if len(fields) == 5:
        fields = ["0", *fields]
        weekdays = _CRONTAB_WEEKDAYS
    if len(fields) not in (6, 7):
        raise ConfigurationError(
            f"Cron expression must have 5, 6 or 7 fields, got {len(fields)}"
        ).with_context(cron_expression=expression)

    second, minute, hour, day, month, day_of_week = fields[:6]
    year = fields[6] if len(fields) == 7 else None

    try:
        return CronTrigger(
            year=year,
            month=month,
            day=_wildcard(day),
            day_of_week=_weekday_names(_wildcard(day_of_week), weekdays),
            hour=hour,
            minute=minute,
            second=second,
            timezone=timezone,
        )
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid cron expression {expression!r}: {exc}", cause=exc
        ).with_context(cron_expression=expression) from exc


def last_fire_time(trigger: CronTrigger, at: datetime) -> datetime | None:
    """Latest fire time of *trigger* at or before *at*.

    Looks back at most a year; None when the trigger did not fire in that
    window.
    """
    for window in _LOOKBACK:
        due = trigger.get_next_fire_time(None, at - window)
        if due is None or due > at:
            continue
        while True:
            later = trigger.get_next_fire_time(None, due + timedelta(seconds=1))
            if later is None or later > at:
                return due
            due = later
    return None


def _wildcard(value: str) -> str:
    return "*" if value == "?" else value


def _weekday_names(expr: str, numbering: dict[int, str]) -> str:
    """Rewrite numeric weekdays as names; names pass through.

    A range that wraps past Sunday (``fri-mon``, or Quartz ``1-7``) is split
    at the end of APScheduler's Monday-first week.
    """
    parts = []
    for part in expr.split(","):
        base, sep, step = part.partition("/")
        ends = []
        for end in base.split("-"):
            if end.isdigit():
                number = int(end)
                if number not in numbering:
                    raise ValueError(
                        f"day-of-week {number} is outside {min(numbering)}-{max(numbering)}"
                    )
                ends.append(numbering[number])
            else:
                ends.append(end.lower())
        if len(ends) == 2 and not sep and _wraps(*ends):
            first, last = ends
            parts.append(f"{first}-sun" if first != "sun" else "sun")
            parts.append(f"mon-{last}")
            continue
        parts.append("-".join(ends) + sep + step)
    return ",".join(parts)


def _wraps(first: str, last: str) -> bool:
    if first not in _WEEK_ORDER or last not in _WEEK_ORDER:
        return False
    return _WEEK_ORDER.index(first) > _WEEK_ORDER.index(last)
