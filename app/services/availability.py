"""
Artist availability and bookable slots.

An artist publishes recurring weekly windows (ArtistAvailability). The free
time on a date is those windows minus active bookings and one-off time
blocks. Slots are cut from the free time at a fixed increment.

The interval helpers work on plain datetimes so they can be used (and tested)
without a database; get_artist_availability / get_available_slots load the
rows and apply them.
"""

import datetime

from flask import current_app
from sqlalchemy import and_, select

from app.extensions import db
from app.models import (
    ACTIVE_BOOKING_STATUSES,
    ArtistAvailability,
    ArtistTimeBlock,
    Booking,
)

DEFAULT_SLOT_MINUTES = 60


def model_weekday(day: datetime.date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def is_rule_effective(rule, day: datetime.date) -> bool:
    if rule.weekday != model_weekday(day):
        return False
    if rule.effective_from and rule.effective_from > day:
        return False
    if rule.effective_to and rule.effective_to < day:
        return False
    return True


def merge_intervals(intervals):
    """Sort and merge overlapping or touching (start, end) pairs."""
    merged = []
    for start, end in sorted(intervals):
        if start >= end:
            continue
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def subtract_intervals(window, busy):
    """Free parts of window after removing busy intervals. Touching is not overlap."""
    free_start, free_end = window
    free = []
    cursor = free_start

    for busy_start, busy_end in merge_intervals(busy):
        if busy_end <= cursor or busy_start >= free_end:
            continue
        if busy_start > cursor:
            free.append((cursor, busy_start))
        cursor = max(cursor, busy_end)
        if cursor >= free_end:
            break

    if cursor < free_end:
        free.append((cursor, free_end))
    return free


def windows_for_date(rules, day: datetime.date):
    """Merged datetime windows of the rules effective on day."""
    windows = [
        (
            datetime.datetime.combine(day, rule.start_time),
            datetime.datetime.combine(day, rule.end_time),
        )
        for rule in rules
        if is_rule_effective(rule, day) and rule.start_time and rule.end_time
    ]
    return merge_intervals(windows)


def free_windows_for_date(rules, busy, day: datetime.date, now=None):
    """Windows on day minus busy intervals, clipped so nothing starts before now."""
    free = []
    for window in windows_for_date(rules, day):
        free.extend(subtract_intervals(window, busy))

    if now is not None:
        clipped = []
        for start, end in free:
            if end <= now:
                continue
            clipped.append((max(start, now), end))
        free = clipped
    return free


def generate_slots(free_windows, duration: datetime.timedelta, increment: datetime.timedelta):
    """Slots of length duration stepping by increment from each window's start."""
    if duration <= datetime.timedelta(0) or increment <= datetime.timedelta(0):
        return []

    slots = []
    for window_start, window_end in free_windows:
        current = window_start
        while current + duration <= window_end:
            slots.append((current, current + duration))
            current += increment
    return slots


def ceil_to_increment(moment: datetime.datetime, increment: datetime.timedelta):
    """Round moment up to the next increment boundary counted from midnight."""
    midnight = datetime.datetime.combine(moment.date(), datetime.time.min)
    elapsed = moment - midnight
    steps = -(-elapsed // increment)
    return midnight + steps * increment


def window_is_free(free_windows, start, end) -> bool:
    return any(w_start <= start and end <= w_end for w_start, w_end in free_windows)


def slot_duration_for_design(design) -> datetime.timedelta:
    hours = design.estimated_hours if design and design.estimated_hours else None
    if hours:
        return datetime.timedelta(minutes=int(round(hours * 60)))
    return datetime.timedelta(minutes=DEFAULT_SLOT_MINUTES)


# -------------------------------------------------------------------------
# Database-backed operations
# -------------------------------------------------------------------------


def _load_rules(artist_id):
    return db.session.scalars(
        select(ArtistAvailability).where(ArtistAvailability.artist_id == artist_id)
    ).all()


def load_busy_intervals(artist_id, start_date, end_date, exclude_booking_id=None):
    """Active bookings and time blocks touching [start_date, end_date]."""
    booking_query = select(
        Booking.booking_date, Booking.start_time, Booking.end_time
    ).where(
        and_(
            Booking.artist_id == artist_id,
            Booking.booking_date >= start_date,
            Booking.booking_date <= end_date,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
    )
    if exclude_booking_id is not None:
        booking_query = booking_query.where(Booking.id != exclude_booking_id)

    busy = [
        (
            datetime.datetime.combine(row.booking_date, row.start_time),
            datetime.datetime.combine(row.booking_date, row.end_time),
        )
        for row in db.session.execute(booking_query).all()
    ]

    range_start = datetime.datetime.combine(start_date, datetime.time.min)
    range_end = datetime.datetime.combine(end_date, datetime.time.max)
    blocks = db.session.execute(
        select(ArtistTimeBlock.start_at, ArtistTimeBlock.end_at).where(
            and_(
                ArtistTimeBlock.artist_id == artist_id,
                ArtistTimeBlock.start_at <= range_end,
                ArtistTimeBlock.end_at >= range_start,
            )
        )
    ).all()
    busy.extend((row.start_at, row.end_at) for row in blocks)
    return busy


def free_windows_by_date(
    artist_id, start_date, end_date, include_bookings=True, now=None, exclude_booking_id=None
):
    """{date: [(start, end), ...]} for every date with free time in the range."""
    now = now or datetime.datetime.now()
    today = now.date()
    start_date = max(start_date, today)
    if end_date < start_date:
        return {}

    max_days = current_app.config.get("AVAILABILITY_MAX_DAYS", 90)
    span = min((end_date - start_date).days, max_days - 1)
    end_date = start_date + datetime.timedelta(days=span)

    increment = datetime.timedelta(
        minutes=current_app.config.get("SLOT_INCREMENT_MINUTES", 15)
    )
    earliest = ceil_to_increment(now, increment)

    rules = _load_rules(artist_id)
    if not rules:
        return {}

    busy = (
        load_busy_intervals(artist_id, start_date, end_date, exclude_booking_id)
        if include_bookings
        else []
    )

    result = {}
    for offset in range(span + 1):
        day = start_date + datetime.timedelta(days=offset)
        free = free_windows_for_date(rules, busy, day, earliest if day == today else None)
        if free:
            result[day] = free
    return result


def get_artist_availability(artist_id, start_date, end_date, include_bookings=True, now=None):
    """Free windows as {date, start_time, end_time} rows, ordered by date and time."""
    by_date = free_windows_by_date(
        artist_id, start_date, end_date, include_bookings=include_bookings, now=now
    )
    return [
        {
            "date": day.isoformat(),
            "start_time": start.time().isoformat(),
            "end_time": end.time().isoformat(),
        }
        for day, windows in sorted(by_date.items())
        for start, end in windows
    ]


def available_dates(artist_id, start_date, end_date, now=None):
    rows = get_artist_availability(artist_id, start_date, end_date, now=now)
    return sorted({row["date"] for row in rows})


def get_available_slots(artist_id, day, slot_duration_minutes, now=None, exclude_booking_id=None):
    """Bookable {start_time, end_time} slots on a single day."""
    windows = free_windows_by_date(
        artist_id, day, day, now=now, exclude_booking_id=exclude_booking_id
    ).get(day, [])

    increment = datetime.timedelta(
        minutes=current_app.config.get("SLOT_INCREMENT_MINUTES", 15)
    )
    duration = datetime.timedelta(minutes=int(slot_duration_minutes))
    return [
        {"start_time": start.time().isoformat(), "end_time": end.time().isoformat()}
        for start, end in generate_slots(windows, duration, increment)
    ]


def is_window_bookable(artist_id, day, start_time, end_time, now=None, exclude_booking_id=None):
    start = datetime.datetime.combine(day, start_time)
    end = datetime.datetime.combine(day, end_time)
    windows = free_windows_by_date(
        artist_id, day, day, now=now, exclude_booking_id=exclude_booking_id
    ).get(day, [])
    return window_is_free(windows, start, end)
