"""In-memory working copy of a weekly schedule and the operations on it."""
import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple

from .const import (
    DAYS,
    DEFAULT_NEW_TIME,
    DEFAULT_TEMP,
    DISPLAY_DAY_ORDER,
    MAX_TRANSITIONS,
)
from .coordinates import ChartGeometry, CoordinateMapper, TemperatureRange, compute_temperature_range
from .drag import DragController, DragState, InputEvent, InputSurface
from .models import (
    DaySchedule,
    WeeklySchedule,
    clamp_temperature,
    copy_day_schedule,
    create_default_weekly_schedule,
    minutes_to_time,
    new_transition,
)
from .normalizer import normalize_day_schedule, sort_transitions
from .validation import TIME_PATTERN, ValidationResult, validate_day_schedule

_LOGGER = logging.getLogger(__name__)

PREVIEW = "preview"
COMMITTED = "committed"


@dataclass(frozen=True)
class ScheduleChange:
    """A preview or committed day schedule emitted by the editor."""

    kind: str
    day: str
    schedule: DaySchedule

    @property
    def committed(self) -> bool:
        return self.kind == COMMITTED


def _check_day(day: str) -> str:
    if day not in DAYS:
        raise ValueError(f"Unknown day '{day}', expected one of {', '.join(DAYS)}")
    return day


def _check_time(time_str: str) -> str:
    if not isinstance(time_str, str) or not TIME_PATTERN.match(time_str):
        raise ValueError(f"Invalid time '{time_str}', expected 24-hour HH:MM")
    return time_str


class ScheduleEditor:
    """Edits one thermostat's weekly schedule.

    Every operation builds a new DaySchedule, normalizes it and then emits a
    ``committed`` change. Drags emit ``preview`` changes while in progress.
    Refused operations (cap reached, occupied time, removing the anchor)
    return False and emit nothing. Committing a day that is being dragged
    cancels the drag.
    """

    def __init__(
        self,
        schedule: Optional[WeeklySchedule] = None,
        surface: Optional[InputSurface] = None,
        geometry: Optional[ChartGeometry] = None,
    ) -> None:
        self._schedule = self._normalized_week(schedule or create_default_weekly_schedule())
        self._geometry = geometry or ChartGeometry()
        self._selected_day = DISPLAY_DAY_ORDER[0]
        self._listeners: List[Callable[[ScheduleChange], None]] = []
        self._drag_day: Optional[str] = None
        self.last_validation: Optional[ValidationResult] = None
        self._mapper = CoordinateMapper(self._geometry, compute_temperature_range(self.day_schedule()))

        self._drag: Optional[DragController] = None
        if surface is not None:
            self._drag = DragController(
                surface,
                schedule_provider=self.day_schedule,
                mapper_provider=lambda: self._mapper,
                on_preview=self._handle_drag_preview,
                on_commit=self._handle_drag_commit,
                on_double_activate=self.remove_transition,
            )

    @staticmethod
    def _normalized_week(schedule: WeeklySchedule) -> WeeklySchedule:
        return WeeklySchedule.from_days(
            {day: normalize_day_schedule(day_schedule) for day, day_schedule in schedule.items()}
        )

    @property
    def weekly_schedule(self) -> WeeklySchedule:
        return self._schedule

    @property
    def selected_day(self) -> str:
        return self._selected_day

    @property
    def temperature_range(self) -> TemperatureRange:
        return self._mapper.temperature_range

    @property
    def mapper(self) -> CoordinateMapper:
        return self._mapper

    @property
    def drag(self) -> Optional[DragController]:
        return self._drag

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None and self._drag.state is not DragState.IDLE

    def add_listener(self, update_callback: Callable[[ScheduleChange], None]) -> Callable[[], None]:
        """Listen for preview and committed changes; returns a remove callable."""
        self._listeners.append(update_callback)

        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    def day_schedule(self, day: Optional[str] = None) -> DaySchedule:
        """The committed schedule of a day (the selected day by default)."""
        return self._schedule.get(_check_day(day or self._selected_day))

    def displayed_schedule(self) -> DaySchedule:
        """What the chart should show: the drag preview if any, else committed."""
        preview = self._drag.preview if self._drag is not None else None
        if preview is not None and self._drag_day == self._selected_day:
            return preview
        return self.day_schedule()

    def select_day(self, day: str) -> None:
        _check_day(day)
        if day == self._selected_day:
            return
        if self._drag is not None:
            self._drag.cancel()
        self._selected_day = day
        self._refresh_mapper()

    def validate(self, day: Optional[str] = None) -> ValidationResult:
        return validate_day_schedule(self.day_schedule(day))

    def add_transition(
        self,
        day: Optional[str] = None,
        time: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> bool:
        """Add a transition; a no-op when the day is full or the time is taken."""
        day = _check_day(day or self._selected_day)
        current = self.day_schedule(day)

        if len(current) >= MAX_TRANSITIONS:
            _LOGGER.debug(f"{day} already has {MAX_TRANSITIONS} transitions, not adding")
            return False

        if time is None:
            time, default_temp = self._default_placement(current)
            if temperature is None:
                temperature = default_temp
        _check_time(time)
        if temperature is None:
            temperature = DEFAULT_TEMP

        if time in current.times:
            _LOGGER.debug(f"{day} already has a transition at {time}, not adding")
            return False

        self._commit(day, current.with_added(new_transition(time, clamp_temperature(temperature))))
        return True

    def update_transition(
        self,
        transition_id: str,
        time: Optional[str] = None,
        temperature: Optional[float] = None,
        day: Optional[str] = None,
    ) -> bool:
        """Change the time and/or temperature of a transition.

        The anchor keeps its 00:00 time; only its temperature can change.
        Moving onto a time another transition already uses is refused.
        """
        day = _check_day(day or self._selected_day)
        current = self.day_schedule(day)
        transition = current.find(transition_id)
        if transition is None:
            _LOGGER.debug(f"No transition {transition_id} on {day}")
            return False

        changes = {}
        if time is not None and not transition.is_anchor and time != transition.time:
            _check_time(time)
            if time in current.times:
                _LOGGER.debug(f"{day} already has a transition at {time}, not moving {transition_id}")
                return False
            changes["time"] = time
        if temperature is not None:
            changes["temperature"] = clamp_temperature(temperature)
        if not changes:
            return False

        self._commit(day, current.replace_transition(transition_id, replace(transition, **changes)))
        return True

    def remove_transition(self, transition_id: str, day: Optional[str] = None) -> bool:
        """Remove a transition. The anchor and the last transition stay."""
        day = _check_day(day or self._selected_day)
        current = self.day_schedule(day)
        transition = current.find(transition_id)
        if transition is None:
            return False
        if transition.is_anchor:
            _LOGGER.debug(f"Cannot remove the {transition.time} transition on {day}")
            return False
        if len(current) <= 1:
            _LOGGER.debug(f"Cannot remove the last transition on {day}")
            return False

        self._commit(day, current.without(transition_id))
        return True

    def copy_day(self, source_day: str, target_days: Iterable[str]) -> List[str]:
        """Copy one day's transitions onto other days."""
        source = self.day_schedule(_check_day(source_day))
        copied = []
        for target in target_days:
            _check_day(target)
            if target == source_day or target in copied:
                continue
            self._commit(target, copy_day_schedule(source))
            copied.append(target)
        _LOGGER.info(f"Copied {source_day} schedule to {copied}")
        return copied

    def set_day_schedule(self, day: str, schedule: DaySchedule) -> bool:
        """Replace a day with an externally supplied schedule.

        Refused when the day would hold more than the device accepts.
        """
        day = _check_day(day)
        count = len(normalize_day_schedule(schedule))
        if count > MAX_TRANSITIONS:
            _LOGGER.debug(f"Not replacing {day}: {count} transitions, at most {MAX_TRANSITIONS} allowed")
            return False
        self._commit(day, copy_day_schedule(schedule))
        return True

    def set_weekly_schedule(self, schedule: WeeklySchedule) -> None:
        """Reseed the whole working copy without emitting changes."""
        if self._drag is not None:
            self._drag.cancel()
        self._schedule = self._normalized_week(schedule)
        self._refresh_mapper()

    def press(self, transition_id: str, event: InputEvent) -> bool:
        """Start a drag gesture on a marker of the selected day."""
        if self._drag is None:
            return False
        if self._drag.press(transition_id, event):
            self._drag_day = self._selected_day
            return True
        return False

    def _default_placement(self, schedule: DaySchedule) -> Tuple[str, float]:
        """Middle of the widest gap, at the rounded mean of its neighbours."""
        transitions = sort_transitions(schedule.transitions)
        if len(transitions) <= 1:
            return DEFAULT_NEW_TIME, DEFAULT_TEMP

        widest = max(
            range(len(transitions) - 1),
            key=lambda i: transitions[i + 1].minutes - transitions[i].minutes,
        )
        before, after = transitions[widest], transitions[widest + 1]
        middle = (before.minutes + after.minutes) // 2
        temperature = float(math.floor((before.temperature + after.temperature) / 2 + 0.5))
        return minutes_to_time(middle), temperature

    def _refresh_mapper(self) -> None:
        self._mapper = CoordinateMapper(self._geometry, compute_temperature_range(self.day_schedule()))

    def _commit(self, day: str, schedule: DaySchedule) -> None:
        if self.is_dragging and day == self._drag_day:
            # The gesture started from the version of the day being replaced
            _LOGGER.debug(f"Cancelling drag on {day}, the day changed underneath it")
            self._drag.cancel()
            self._drag_day = None
        normalized = normalize_day_schedule(schedule)
        self._schedule = self._schedule.replace_day(day, normalized)
        self.last_validation = validate_day_schedule(normalized)
        if not self.last_validation.valid:
            _LOGGER.info(f"{day} schedule committed with violations: {self.last_validation.messages}")
        if day == self._selected_day:
            self._refresh_mapper()
        self._emit(ScheduleChange(COMMITTED, day, normalized))

    def _handle_drag_preview(self, schedule: DaySchedule) -> None:
        self._emit(ScheduleChange(PREVIEW, self._drag_day, schedule))

    def _handle_drag_commit(self, schedule: DaySchedule) -> None:
        day = self._drag_day
        self._drag_day = None
        self._commit(day, schedule)

    def _emit(self, change: ScheduleChange) -> None:
        for listener in list(self._listeners):
            listener(change)
