"""
Event timers with delayed direct-message notices.

Each timer gets at most three notices: a 12-hour warning, a 30-minute warning
and an "event now" notice, each guarded by its own one-way flag. Warnings are
edge-triggered: they fire on the scan where the remaining time crosses the
threshold, measured against the previous scan instant, so irregular ticks
neither skip nor repeat them. The previous instant never reaches further back
than `max_gap`: after downtime, or for a timer added since the last scan, a
threshold crossed long ago is not reported late. Timers are dropped once
they are more than a minute past due.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
import logging
from typing import Optional

from questbot.core.errors import InvalidArgument, InvalidTime, NotFound, PastTime
from questbot.core.models import Document, Timer, next_id


logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M"
EXPIRY_GRACE = timedelta(seconds=60)
DEFAULT_SCAN_INTERVAL = timedelta(seconds=60)
MAX_SCAN_GAP = 2 * DEFAULT_SCAN_INTERVAL

NOTICE_12H = "12h"
NOTICE_30M = "30m"
NOTICE_NOW = "now"

# (kind, threshold, flag attribute)
WARNINGS = (
    (NOTICE_12H, timedelta(hours=12), "notified_12h"),
    (NOTICE_30M, timedelta(minutes=30), "notified_30m"),
)


@dataclass
class TimerNotice:
    timer: Timer
    kind: str


def parse_event_time(text: str, tz: tzinfo) -> datetime:
    """Parse `YYYY-MM-DD HH:MM` as wall-clock time in the given zone."""
    try:
        naive = datetime.strptime(text.strip(), TIME_FORMAT)
    except (ValueError, AttributeError):
        raise InvalidTime("Invalid time. Use the format YYYY-MM-DD HH:MM.") from None
    when = naive.replace(tzinfo=tz)
    # Wall-clock times skipped by a DST change do not survive a round trip.
    if when.astimezone(timezone.utc).astimezone(tz).replace(tzinfo=None) != naive:
        raise InvalidTime("That time does not exist in the configured time zone (clocks change).")
    return when


def add_timer(
    doc: Document,
    user_id: str | int,
    name: str,
    time_text: str,
    description: str = "",
    tz: tzinfo = timezone.utc,
    now: Optional[datetime] = None,
) -> Timer:
    name = name.strip()
    if not name:
        raise InvalidArgument("Timer name cannot be empty.")
    when = parse_event_time(time_text, tz)
    now = now or datetime.now(timezone.utc)
    if when <= now:
        raise PastTime("That time is in the past. Pick a future time.")

    meta = doc.meta
    timer_id = max(meta.next_timer_id, next_id([t.id for t in meta.timers]))
    meta.next_timer_id = timer_id + 1
    timer = Timer(
        id=timer_id,
        name=name,
        timestamp=when,
        user_id=str(user_id),
        description=(description or "").strip(),
    )
    meta.timers.append(timer)
    return timer


def list_timers(doc: Document, user_id: str | int) -> list[Timer]:
    return [t for t in doc.meta.timers if t.user_id == str(user_id)]


def delete_timer(doc: Document, user_id: str | int, timer_id: int) -> Timer:
    for index, timer in enumerate(doc.meta.timers):
        if timer.id == timer_id and timer.user_id == str(user_id):
            return doc.meta.timers.pop(index)
    raise NotFound("Timer not found.")


def scan_timers(
    doc: Document,
    now: Optional[datetime] = None,
    previous: Optional[datetime] = None,
    max_gap: timedelta = MAX_SCAN_GAP,
) -> list[TimerNotice]:
    """
    Advance every timer to `now` and return the notices that became due.

    Flags are set for every returned notice before delivery is attempted.
    The scan instant is stored in the document and used as `previous` next
    time.
    """
    now = now or datetime.now(timezone.utc)
    previous = previous or doc.meta.last_timer_scan
    if previous is None or previous >= now:
        previous = now - DEFAULT_SCAN_INTERVAL
    elif now - previous > max_gap:
        logger.info("Last timer scan was %s ago; only looking back %s", now - previous, max_gap)
        previous = now - max_gap

    notices: list[TimerNotice] = []
    kept: list[Timer] = []
    for timer in doc.meta.timers:
        remaining = timer.timestamp - now
        if remaining < -EXPIRY_GRACE:
            logger.info("Removing expired timer #%d '%s' (user %s)", timer.id, timer.name, timer.user_id)
            continue
        kept.append(timer)

        before = timer.timestamp - previous
        for kind, threshold, flag in WARNINGS:
            if getattr(timer, flag) or remaining <= timedelta(0):
                continue
            if before > threshold >= remaining:
                setattr(timer, flag, True)
                notices.append(TimerNotice(timer, kind))

        if remaining <= timedelta(0) and not timer.notified_exact:
            timer.notified_exact = True
            notices.append(TimerNotice(timer, NOTICE_NOW))

    doc.meta.timers = kept
    doc.meta.last_timer_scan = now
    return notices


def discord_timestamp(when: datetime, style: str = "F") -> str:
    return f"<t:{int(when.timestamp())}:{style}>"


def render_notice(notice: TimerNotice) -> str:
    timer = notice.timer
    if notice.kind == NOTICE_12H:
        head = f"⏰ **{timer.name}** starts in 12 hours ({discord_timestamp(timer.timestamp)})."
    elif notice.kind == NOTICE_30M:
        head = f"⏰ **{timer.name}** starts in 30 minutes ({discord_timestamp(timer.timestamp, 'R')})."
    else:
        head = f"🔔 **{timer.name}** is happening now!"
    if timer.description:
        return f"{head}\n{timer.description}"
    return head
