"""Validation of day schedules.

Validation never mutates and never raises. It reports what is wrong as data,
independently of whatever auto-fixes already ran. The editing flow always
normalizes before validating, so violations are advisory.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .const import ANCHOR_TIME, MAX_TEMP, MAX_TRANSITIONS, MIN_TEMP, TEMP_STEP
from .models import DaySchedule, Transition, WeeklySchedule

_LOGGER = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Violation codes
EMPTY = "empty"
MISSING_ANCHOR = "missing_anchor"
TOO_MANY_TRANSITIONS = "too_many_transitions"
DUPLICATE_TIME = "duplicate_time"
OUT_OF_ORDER = "out_of_order"
INVALID_TIME = "invalid_time"
TEMPERATURE_OUT_OF_RANGE = "temperature_out_of_range"
TEMPERATURE_NOT_ON_STEP = "temperature_not_on_step"


@dataclass(frozen=True)
class Violation:
    code: str
    message: str
    transition_id: Optional[str] = None


@dataclass
class ValidationResult:
    valid: bool
    violations: List[Violation] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [v.message for v in self.violations]

    def has(self, code: str) -> bool:
        return any(v.code == code for v in self.violations)


def validate_transition(transition: Transition) -> List[Violation]:
    """Check the time format and temperature of a single transition."""
    violations = []

    if not isinstance(transition.time, str) or not TIME_PATTERN.match(transition.time):
        violations.append(Violation(
            INVALID_TIME,
            f"Invalid time format: {transition.time} (expected 24-hour HH:MM)",
            transition.id,
        ))

    try:
        temperature = float(transition.temperature)
    except (TypeError, ValueError):
        violations.append(Violation(
            TEMPERATURE_OUT_OF_RANGE,
            f"Invalid temperature: {transition.temperature}",
            transition.id,
        ))
        return violations

    if not MIN_TEMP <= temperature <= MAX_TEMP:
        violations.append(Violation(
            TEMPERATURE_OUT_OF_RANGE,
            f"Temperature {temperature}°C at {transition.time} is outside {MIN_TEMP}-{MAX_TEMP}°C",
            transition.id,
        ))
    steps = temperature / TEMP_STEP
    if not math.isclose(steps, round(steps), abs_tol=1e-9):
        violations.append(Violation(
            TEMPERATURE_NOT_ON_STEP,
            f"Temperature {temperature}°C at {transition.time} is not a multiple of {TEMP_STEP}°C",
            transition.id,
        ))

    return violations


def validate_day_schedule(schedule: DaySchedule) -> ValidationResult:
    """Check every invariant of a day schedule."""
    violations: List[Violation] = []
    transitions = schedule.transitions

    if not transitions:
        violations.append(Violation(EMPTY, "Schedule must have at least one transition"))
        return ValidationResult(valid=False, violations=violations)

    if transitions[0].time != ANCHOR_TIME:
        violations.append(Violation(
            MISSING_ANCHOR,
            f"First transition must be at {ANCHOR_TIME} (found {transitions[0].time})",
            transitions[0].id,
        ))

    if len(transitions) > MAX_TRANSITIONS:
        violations.append(Violation(
            TOO_MANY_TRANSITIONS,
            f"Maximum {MAX_TRANSITIONS} transitions per day (found {len(transitions)})",
        ))

    seen = set()
    previous: Optional[Transition] = None
    for transition in transitions:
        violations.extend(validate_transition(transition))

        if transition.time in seen:
            violations.append(Violation(
                DUPLICATE_TIME,
                f"Duplicate transition time: {transition.time}",
                transition.id,
            ))
        seen.add(transition.time)

        if (
            previous is not None
            and TIME_PATTERN.match(str(previous.time))
            and TIME_PATTERN.match(str(transition.time))
            and transition.time < previous.time
        ):
            violations.append(Violation(
                OUT_OF_ORDER,
                f"Transition {transition.time} comes after {previous.time}; times must be increasing",
                transition.id,
            ))
        previous = transition

    if violations:
        _LOGGER.debug(f"Schedule has {len(violations)} violation(s): {[v.code for v in violations]}")

    return ValidationResult(valid=not violations, violations=violations)


def validate_weekly_schedule(schedule: WeeklySchedule) -> Dict[str, ValidationResult]:
    return {day: validate_day_schedule(day_schedule) for day, day_schedule in schedule.items()}
