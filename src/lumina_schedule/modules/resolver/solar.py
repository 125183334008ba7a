"""
Solar event times and trigger resolution.

Uses astral to compute sunrise/sunset for a coordinate on a local date.
Returns None when the event does not occur (polar day/night) or when no
coordinates are known; callers treat that as "not resolvable today".
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from astral import Observer
from astral.sun import sunrise, sunset

from ...core.models import ClockTime, SolarEvent, SolarKind, Trigger

logger = logging.getLogger(__name__)


def solar_time(
    kind: SolarKind,
    day: date,
    latitude: float,
    longitude: float,
    tz: tzinfo,
) -> Optional[datetime]:
    """
    Compute a solar event for a local date.

    Args:
        kind: Sunrise or sunset
        day: Local calendar date
        latitude: Degrees north
        longitude: Degrees east
        tz: Timezone the result is expressed in

    Returns:
        Aware datetime in `tz`, or None if the sun never rises/sets that day
    """
    observer = Observer(latitude=latitude, longitude=longitude)
    compute = sunrise if kind == SolarKind.SUNRISE else sunset
    try:
        return compute(observer, date=day, tzinfo=tz)
    except ValueError as e:
        # astral raises when the sun stays above/below the horizon all day
        logger.debug(f"No {kind.value} on {day} at ({latitude}, {longitude}): {e}")
        return None


def resolve_trigger(
    trigger: Trigger,
    day: date,
    tz: tzinfo,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Optional[datetime]:
    """
    Resolve a trigger to a concrete instant on a local date.

    Clock triggers always resolve. Solar triggers need coordinates and a
    sun that actually rises/sets that day; otherwise None.
    """
    if isinstance(trigger, ClockTime):
        return datetime.combine(day, trigger.to_time(), tzinfo=tz)

    if isinstance(trigger, SolarEvent):
        if latitude is None or longitude is None:
            return None
        base = solar_time(trigger.kind, day, latitude, longitude, tz)
        if base is None:
            return None
        return base + timedelta(minutes=trigger.offset_minutes)

    raise ValueError(f"Unknown trigger type: {type(trigger).__name__}")
