"""Pointer and touch drag handling for transition markers on the chart.

A gesture moves through three states::

    IDLE --press on marker--> ARMED --moved past threshold--> DRAGGING
      ^                         |                                |
      +-------release/cancel----+-------------release/cancel-----+

Pressing arms the controller and subscribes to the move/release/cancel
events of the global input surface. Nothing changes until the pointer has
moved more than the threshold away from where it was pressed, which tells a
click or tap apart from a drag. While dragging every move produces a preview
of the day with only the dragged transition changed. The preview is not
normalized: re-sorting mid-gesture would move the dragged transition to a
different position, so the target is always looked up by id. Release commits
the normalized preview; cancel throws it away. Every path back to IDLE
removes the surface listeners.
"""
import logging
import math
import time as _time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional, Protocol

from .const import ANCHOR_TIME, DOUBLE_ACTIVATION_MS, DRAG_THRESHOLD_PX, SNAP_MINUTES
from .coordinates import AffineMatrix, BoundingRect, CoordinateMapper, screen_to_logical
from .models import DaySchedule, Transition, minutes_to_time
from .normalizer import normalize_day_schedule

_LOGGER = logging.getLogger(__name__)

POINTER_DOWN = "pointerdown"
POINTER_MOVE = "pointermove"
POINTER_UP = "pointerup"
POINTER_CANCEL = "pointercancel"
TOUCH_START = "touchstart"
TOUCH_MOVE = "touchmove"
TOUCH_END = "touchend"
TOUCH_CANCEL = "touchcancel"

PRESS_EVENTS = (POINTER_DOWN, TOUCH_START)
MOVE_EVENTS = (POINTER_MOVE, TOUCH_MOVE)
RELEASE_EVENTS = (POINTER_UP, TOUCH_END)
CANCEL_EVENTS = (POINTER_CANCEL, TOUCH_CANCEL)
GESTURE_EVENTS = MOVE_EVENTS + RELEASE_EVENTS + CANCEL_EVENTS
INPUT_EVENTS = PRESS_EVENTS + GESTURE_EVENTS

MINUTES_PER_DAY = 24 * 60


class DragState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class InputEvent:
    """A pointer or touch event in viewport pixels.

    Touch events are delivered one changed touch at a time, using the touch
    identifier as ``pointer_id``.
    """

    type: str
    client_x: float
    client_y: float
    pointer_id: int = 0
    timestamp: Optional[float] = None

    @property
    def time_ms(self) -> float:
        if self.timestamp is not None:
            return self.timestamp
        return _time.monotonic() * 1000


class InputSurface(Protocol):
    """The host's top-level input surface and chart geometry."""

    def add_listener(self, event_type: str, handler: Callable[[InputEvent], None]) -> Callable[[], None]:
        """Subscribe to an event type; returns a callable that unsubscribes."""

    def screen_ctm(self) -> Optional[AffineMatrix]:
        """Logical-to-screen transform of the chart, if known."""

    def bounding_rect(self) -> Optional[BoundingRect]:
        """On-screen box of the chart."""


@dataclass
class _Gesture:
    transition_id: str
    pointer_id: int
    start_x: float
    start_y: float
    is_anchor: bool
    mapper: CoordinateMapper
    preview: DaySchedule


def snap_minutes(hours: float, step: int = SNAP_MINUTES) -> int:
    """Snap decimal hours to the grid, keeping clear of midnight on both ends."""
    snapped = int(math.floor(hours * 60 / step + 0.5)) * step
    return max(step, min(MINUTES_PER_DAY - step, snapped))


class DragController:
    """Turns press/move/release/cancel input into schedule edits."""

    def __init__(
        self,
        surface: InputSurface,
        schedule_provider: Callable[[], Optional[DaySchedule]],
        mapper_provider: Callable[[], CoordinateMapper],
        on_preview: Callable[[DaySchedule], None],
        on_commit: Callable[[DaySchedule], None],
        on_double_activate: Optional[Callable[[str], None]] = None,
        threshold: float = DRAG_THRESHOLD_PX,
        snap: int = SNAP_MINUTES,
        double_activation_ms: float = DOUBLE_ACTIVATION_MS,
    ) -> None:
        self._surface = surface
        self._schedule_provider = schedule_provider
        self._mapper_provider = mapper_provider
        self._on_preview = on_preview
        self._on_commit = on_commit
        self._on_double_activate = on_double_activate
        self._threshold = threshold
        self._snap = snap
        self._double_activation_ms = double_activation_ms

        self._state = DragState.IDLE
        self._gesture: Optional[_Gesture] = None
        self._unsubscribers: List[Callable[[], None]] = []
        self._last_tap: Optional[tuple] = None

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def active_transition_id(self) -> Optional[str]:
        return self._gesture.transition_id if self._gesture else None

    @property
    def preview(self) -> Optional[DaySchedule]:
        """The live preview while dragging, otherwise None."""
        if self._state is DragState.DRAGGING and self._gesture:
            return self._gesture.preview
        return None

    @property
    def listener_count(self) -> int:
        return len(self._unsubscribers)

    def press(self, transition_id: str, event: InputEvent) -> bool:
        """Arm a gesture on the marker of ``transition_id``.

        Ignored while another gesture is in progress: the first pointer wins.
        """
        if self._state is not DragState.IDLE:
            _LOGGER.debug(
                f"Ignoring press on {transition_id} (pointer {event.pointer_id}): "
                f"gesture already {self._state.value}"
            )
            return False

        schedule = self._schedule_provider()
        if schedule is None:
            return False
        transition = schedule.find(transition_id)
        if transition is None:
            _LOGGER.debug(f"Ignoring press on unknown transition {transition_id}")
            return False

        self._gesture = _Gesture(
            transition_id=transition_id,
            pointer_id=event.pointer_id,
            start_x=event.client_x,
            start_y=event.client_y,
            is_anchor=transition.time == ANCHOR_TIME,
            mapper=self._mapper_provider(),
            preview=schedule,
        )
        self._state = DragState.ARMED
        self._subscribe()
        _LOGGER.debug(f"Armed drag on {transition_id} at ({event.client_x}, {event.client_y})")
        return True

    def cancel(self) -> None:
        """Abort any gesture without emitting anything."""
        if self._state is DragState.IDLE:
            return
        _LOGGER.debug(f"Drag on {self.active_transition_id} cancelled")
        self._reset()

    def _subscribe(self) -> None:
        handlers = {}
        for event_type in MOVE_EVENTS:
            handlers[event_type] = self._handle_move
        for event_type in RELEASE_EVENTS:
            handlers[event_type] = self._handle_release
        for event_type in CANCEL_EVENTS:
            handlers[event_type] = self._handle_cancel
        for event_type, handler in handlers.items():
            self._unsubscribers.append(self._surface.add_listener(event_type, handler))

    def _unsubscribe(self) -> None:
        while self._unsubscribers:
            unsubscribe = self._unsubscribers.pop()
            unsubscribe()

    def _reset(self) -> None:
        self._unsubscribe()
        self._gesture = None
        self._state = DragState.IDLE

    def _owns(self, event: InputEvent) -> bool:
        return self._gesture is not None and event.pointer_id == self._gesture.pointer_id

    def _handle_move(self, event: InputEvent) -> None:
        if not self._owns(event):
            return
        gesture = self._gesture

        if self._state is DragState.ARMED:
            distance = math.hypot(event.client_x - gesture.start_x, event.client_y - gesture.start_y)
            if distance <= self._threshold:
                return
            self._state = DragState.DRAGGING
            _LOGGER.debug(f"Drag threshold exceeded ({distance:.1f}px), dragging {gesture.transition_id}")

        updated = self._transition_at(gesture, event)
        gesture.preview = gesture.preview.replace_transition(gesture.transition_id, updated)
        self._on_preview(gesture.preview)

    def _handle_release(self, event: InputEvent) -> None:
        if not self._owns(event):
            return
        gesture = self._gesture

        if self._state is DragState.DRAGGING:
            committed = normalize_day_schedule(gesture.preview)
            self._reset()
            self._last_tap = None
            _LOGGER.debug(f"Drag of {gesture.transition_id} finished, committing")
            self._on_commit(committed)
            return

        # Released before the threshold: a tap, not an edit
        self._reset()
        self._register_tap(gesture.transition_id, event.time_ms)

    def _handle_cancel(self, event: InputEvent) -> None:
        if not self._owns(event):
            return
        self.cancel()

    def _register_tap(self, transition_id: str, time_ms: float) -> None:
        last = self._last_tap
        if (
            last is not None
            and last[0] == transition_id
            and time_ms - last[1] <= self._double_activation_ms
        ):
            self._last_tap = None
            _LOGGER.debug(f"Double activation on {transition_id}")
            if self._on_double_activate is not None:
                self._on_double_activate(transition_id)
            return
        self._last_tap = (transition_id, time_ms)

    def _transition_at(self, gesture: _Gesture, event: InputEvent) -> Transition:
        """The dragged transition moved to the pointer position."""
        mapper = gesture.mapper
        x, y = screen_to_logical(self._surface, event.client_x, event.client_y, mapper.geometry)
        temperature = mapper.y_to_temp(y)
        current = gesture.preview.find(gesture.transition_id)

        if gesture.is_anchor:
            new_time = ANCHOR_TIME
        else:
            new_time = minutes_to_time(snap_minutes(mapper.x_to_hour(x), self._snap))

        return replace(current, time=new_time, temperature=temperature)
