"""Auto-fix operations that bring a day schedule into canonical form.

All functions are pure: they return new values and never mutate their input.
Normalization order matters. Duplicates are dropped in input order (the first
transition at a time wins) before sorting, and anchor insertion sorts again.
The six-transition cap is not enforced here. Dropping a transition the user
wrote is not a cleanup, so editing operations refuse input beyond the cap and
the validator reports it on schedules read from the device.
"""
import logging
from typing import Iterable, List

from .const import ANCHOR_TIME, DEFAULT_TEMP
from .models import DaySchedule, Transition, new_transition

_LOGGER = logging.getLogger(__name__)


def dedup_transitions(transitions: Iterable[Transition]) -> List[Transition]:
    """Keep the first occurrence of each time, dropping later duplicates."""
    seen = set()
    result: List[Transition] = []
    for transition in transitions:
        if transition.time in seen:
            _LOGGER.debug(f"Dropping duplicate transition at {transition.time} ({transition.temperature}°C)")
            continue
        seen.add(transition.time)
        result.append(transition.with_id())
    return result


def sort_transitions(transitions: Iterable[Transition]) -> List[Transition]:
    """Stable chronological sort by time of day."""
    return sorted(transitions, key=lambda t: t.minutes)


def ensure_anchor(schedule: DaySchedule) -> DaySchedule:
    """Insert a 00:00 transition at the default temperature if there is none.

    The inserted temperature is always the default, never inferred from the
    neighbouring transitions.
    """
    transitions = list(schedule.transitions)
    if not any(t.time == ANCHOR_TIME for t in transitions):
        _LOGGER.debug(f"Adding missing {ANCHOR_TIME} transition at {DEFAULT_TEMP}°C")
        transitions.insert(0, new_transition(ANCHOR_TIME, DEFAULT_TEMP))
    return DaySchedule(tuple(sort_transitions(transitions)))


def normalize_day_schedule(schedule: DaySchedule) -> DaySchedule:
    """Dedup, sort and ensure the anchor, in that order."""
    deduplicated = dedup_transitions(schedule.transitions)
    return ensure_anchor(DaySchedule(tuple(sort_transitions(deduplicated))))


def is_normalized(schedule: DaySchedule) -> bool:
    return normalize_day_schedule(schedule).to_pairs() == schedule.to_pairs()
