"""Schedule data models for TRVZB Scheduler."""
import itertools
import logging
import math
import time as _time
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .const import ANCHOR_TIME, DAYS, DEFAULT_TEMP, MAX_TEMP, MIN_TEMP, TEMP_STEP

_LOGGER = logging.getLogger(__name__)

_transition_counter = itertools.count(1)


def generate_transition_id() -> str:
    """Generate an identifier that tracks a transition across re-sorts."""
    return f"t-{int(_time.time() * 1000)}-{next(_transition_counter)}"


def time_to_minutes(time_str: str) -> int:
    """Convert "HH:MM" to minutes after midnight."""
    hours, minutes = time_str.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Convert minutes after midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def time_to_hours(time_str: str) -> float:
    """Convert "HH:MM" to decimal hours."""
    return time_to_minutes(time_str) / 60


def hours_to_time(hours: float) -> str:
    """Convert decimal hours to "HH:MM", rounding to the nearest minute."""
    minutes = int(math.floor(hours * 60 + 0.5))
    return minutes_to_time(max(0, min(24 * 60 - 1, minutes)))


def quantize_temperature(value: float) -> float:
    """Round to the nearest 0.5 degree step, halves rounding up."""
    steps = math.floor(value / TEMP_STEP + 0.5)
    return steps * TEMP_STEP


def clamp_temperature(value: float, minimum: float = MIN_TEMP, maximum: float = MAX_TEMP) -> float:
    """Quantize and clamp a temperature to the allowed range."""
    return max(minimum, min(maximum, quantize_temperature(value)))


@dataclass(frozen=True)
class Transition:
    """A point in the day where the target temperature changes."""

    time: str
    temperature: float
    id: Optional[str] = field(default=None, compare=False)

    @property
    def minutes(self) -> int:
        """Minutes after midnight."""
        return time_to_minutes(self.time)

    @property
    def hours(self) -> float:
        """Decimal hours after midnight."""
        return time_to_hours(self.time)

    @property
    def is_anchor(self) -> bool:
        """Whether this is the mandatory midnight transition."""
        return self.time == ANCHOR_TIME

    def with_id(self) -> "Transition":
        """Return this transition, generating an id only if it has none."""
        if self.id:
            return self
        return replace(self, id=generate_transition_id())

    def as_dict(self) -> Dict[str, object]:
        return {"id": self.id, "time": self.time, "temperature": self.temperature}


def new_transition(time_str: str, temperature: float) -> Transition:
    """Create a transition with a fresh identifier."""
    return Transition(time=time_str, temperature=float(temperature), id=generate_transition_id())


@dataclass(frozen=True)
class DaySchedule:
    """The transitions of a single day.

    Values are immutable; every edit builds a new DaySchedule. The order of
    ``transitions`` is only canonical once the schedule has been normalized.
    """

    transitions: Tuple[Transition, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.transitions, tuple):
            object.__setattr__(self, "transitions", tuple(self.transitions))

    def __len__(self) -> int:
        return len(self.transitions)

    def __iter__(self) -> Iterator[Transition]:
        return iter(self.transitions)

    @property
    def times(self) -> List[str]:
        return [t.time for t in self.transitions]

    @property
    def anchor(self) -> Optional[Transition]:
        """The 00:00 transition, if present."""
        for transition in self.transitions:
            if transition.is_anchor:
                return transition
        return None

    def find(self, transition_id: Optional[str]) -> Optional[Transition]:
        """Look up a transition by its identifier."""
        if not transition_id:
            return None
        for transition in self.transitions:
            if transition.id == transition_id:
                return transition
        return None

    def replace_transition(self, transition_id: str, updated: Transition) -> "DaySchedule":
        """Swap the transition with the given id in place, keeping positions."""
        return DaySchedule(
            tuple(
                replace(updated, id=transition_id) if t.id == transition_id else t
                for t in self.transitions
            )
        )

    def without(self, transition_id: str) -> "DaySchedule":
        return DaySchedule(tuple(t for t in self.transitions if t.id != transition_id))

    def with_added(self, transition: Transition) -> "DaySchedule":
        return DaySchedule(self.transitions + (transition.with_id(),))

    def to_pairs(self) -> List[Tuple[str, float]]:
        """(time, temperature) pairs, ignoring identifiers."""
        return [(t.time, t.temperature) for t in self.transitions]

    def as_list(self) -> List[Dict[str, object]]:
        return [t.as_dict() for t in self.transitions]


def create_default_day_schedule() -> DaySchedule:
    """The canonical default day: a single 00:00 transition at 20 degrees."""
    return DaySchedule((new_transition(ANCHOR_TIME, DEFAULT_TEMP),))


def copy_day_schedule(source: DaySchedule) -> DaySchedule:
    """Deep copy a day, preserving ids and generating them only where missing."""
    return DaySchedule(
        tuple(
            Transition(time=t.time, temperature=t.temperature, id=t.id or generate_transition_id())
            for t in source.transitions
        )
    )


def day_schedule_from_pairs(pairs: Iterable[Tuple[str, float]]) -> DaySchedule:
    """Build an (un-normalized) day from (time, temperature) pairs."""
    return DaySchedule(tuple(new_transition(time_str, temp) for time_str, temp in pairs))


@dataclass(frozen=True)
class WeeklySchedule:
    """Schedules for all seven days. Never partial."""

    sunday: DaySchedule = field(default_factory=create_default_day_schedule)
    monday: DaySchedule = field(default_factory=create_default_day_schedule)
    tuesday: DaySchedule = field(default_factory=create_default_day_schedule)
    wednesday: DaySchedule = field(default_factory=create_default_day_schedule)
    thursday: DaySchedule = field(default_factory=create_default_day_schedule)
    friday: DaySchedule = field(default_factory=create_default_day_schedule)
    saturday: DaySchedule = field(default_factory=create_default_day_schedule)

    def get(self, day: str) -> DaySchedule:
        if day not in DAYS:
            raise KeyError(f"Unknown day: {day}")
        return getattr(self, day)

    def __getitem__(self, day: str) -> DaySchedule:
        return self.get(day)

    def replace_day(self, day: str, schedule: DaySchedule) -> "WeeklySchedule":
        """Return a new week with one day swapped out."""
        if day not in DAYS:
            raise KeyError(f"Unknown day: {day}")
        return replace(self, **{day: schedule})

    def items(self) -> List[Tuple[str, DaySchedule]]:
        return [(day, getattr(self, day)) for day in DAYS]

    @classmethod
    def from_days(cls, days: Dict[str, DaySchedule]) -> "WeeklySchedule":
        """Build a week, filling any day that is missing with the default."""
        missing = [day for day in DAYS if day not in days]
        if missing:
            _LOGGER.debug(f"Filling missing days with default schedule: {missing}")
        return cls(**{day: days.get(day) or create_default_day_schedule() for day in DAYS})


def create_default_weekly_schedule() -> WeeklySchedule:
    return WeeklySchedule()
