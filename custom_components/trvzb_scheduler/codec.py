"""Conversion between the device's textual schedule format and the models.

A day is transmitted as whitespace separated ``HH:MM/temperature`` tokens,
e.g. ``"00:00/20 06:00/22.5 08:00/18"``. Integral temperatures carry no
decimal point, all others exactly one decimal place. Any change to spacing,
token order or number formatting breaks compatibility with the device.
"""
import logging
import re
from typing import Dict, Mapping, Optional

from .const import DAYS
from .models import (
    DaySchedule,
    WeeklySchedule,
    create_default_day_schedule,
    new_transition,
    quantize_temperature,
)
from .normalizer import dedup_transitions, normalize_day_schedule, sort_transitions

_LOGGER = logging.getLogger(__name__)

TRANSITION_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)/(\d+(?:\.\d+)?)$")


def parse_day_schedule(text: Optional[str]) -> DaySchedule:
    """Parse a day string, skipping malformed tokens.

    Temperatures are rounded to the 0.5 degree step the device uses. Returns
    the default day when nothing valid remains. The result is always
    normalized.
    """
    if not text or not text.strip():
        return create_default_day_schedule()

    transitions = []
    for token in text.split():
        match = TRANSITION_PATTERN.match(token)
        if not match:
            _LOGGER.warning(f"Malformed transition: {token}, skipping")
            continue
        hours, minutes, raw_temperature = match.groups()
        temperature = quantize_temperature(float(raw_temperature))
        if temperature != float(raw_temperature):
            _LOGGER.debug(f"Rounded {token} to {temperature}°C")
        transitions.append(new_transition(f"{hours}:{minutes}", temperature))

    if not transitions:
        _LOGGER.warning(f"No valid transitions in '{text}', using default schedule")
        return create_default_day_schedule()

    return normalize_day_schedule(DaySchedule(tuple(transitions)))


def format_temperature(value: float) -> str:
    """20.0 -> "20", 20.5 -> "20.5"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def serialize_day_schedule(schedule: DaySchedule) -> str:
    """Format a day for the device, deduplicating and sorting first."""
    transitions = sort_transitions(dedup_transitions(schedule.transitions))
    return " ".join(f"{t.time}/{format_temperature(t.temperature)}" for t in transitions)


def parse_weekly_schedule(payload: Optional[Mapping[str, Optional[str]]]) -> WeeklySchedule:
    """Parse the seven day strings of a ``weekly_schedule`` payload.

    Missing or empty days become the default day rather than failing the week.
    """
    payload = payload or {}
    return WeeklySchedule.from_days({day: parse_day_schedule(payload.get(day) or "") for day in DAYS})


def serialize_weekly_schedule(schedule: WeeklySchedule) -> Dict[str, str]:
    return {day: serialize_day_schedule(day_schedule) for day, day_schedule in schedule.items()}
