"""Editing sessions for TRVZB Scheduler, one per climate entity."""
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Sequence

from homeassistant.core import HomeAssistant, callback

from .codec import serialize_day_schedule
from .const import (
    DEFAULT_AUTO_SAVE,
    DEFAULT_MQTT_BASE_TOPIC,
    EVENT_SCHEDULE_COMMITTED,
    EVENT_SCHEDULE_PREVIEW,
)
from .coordinates import AffineMatrix, BoundingRect
from .drag import InputEvent
from .editor import ScheduleChange, ScheduleEditor
from .transport import ScheduleSaveError, async_read_schedule, async_save_schedule

_LOGGER = logging.getLogger(__name__)


class ServiceInputSurface:
    """Input surface fed by pointer_event service calls.

    The card forwards its document-level pointer/touch events here, together
    with the chart's current screen transform or bounding box.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable[[InputEvent], None]]] = defaultdict(list)
        self._ctm: Optional[AffineMatrix] = None
        self._rect: Optional[BoundingRect] = None

    def add_listener(self, event_type: str, handler: Callable[[InputEvent], None]) -> Callable[[], None]:
        self._listeners[event_type].append(handler)

        def remove_listener() -> None:
            handlers = self._listeners.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return remove_listener

    def listener_count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(handlers) for handlers in self._listeners.values())

    def update_geometry(
        self,
        ctm: Optional[Sequence[float]] = None,
        rect: Optional[Sequence[float]] = None,
    ) -> None:
        """Record the chart's position as reported with the latest event."""
        if ctm is not None:
            self._ctm = AffineMatrix(*ctm)
        if rect is not None:
            self._rect = BoundingRect(*rect)

    def screen_ctm(self) -> Optional[AffineMatrix]:
        return self._ctm

    def bounding_rect(self) -> Optional[BoundingRect]:
        return self._rect

    def dispatch(self, event: InputEvent) -> None:
        # Handlers may unsubscribe while being called
        for handler in list(self._listeners.get(event.type, [])):
            handler(event)


class ScheduleSession:
    """The working copy of one entity's schedule and its input surface."""

    def __init__(self, entity_id: str, editor: ScheduleEditor, surface: ServiceInputSurface) -> None:
        self.entity_id = entity_id
        self.editor = editor
        self.surface = surface
        self.remove_listener: Optional[Callable[[], None]] = None


class ScheduleSessionManager:
    """Owns editing sessions and connects them to the bus and the device."""

    def __init__(
        self,
        hass: HomeAssistant,
        base_topic: str = DEFAULT_MQTT_BASE_TOPIC,
        auto_save: bool = DEFAULT_AUTO_SAVE,
    ) -> None:
        self.hass = hass
        self.base_topic = base_topic
        self.auto_save = auto_save
        self._sessions: Dict[str, ScheduleSession] = {}

    @property
    def entity_ids(self) -> List[str]:
        return list(self._sessions)

    def get_session(self, entity_id: str) -> Optional[ScheduleSession]:
        return self._sessions.get(entity_id)

    async def async_get_session(self, entity_id: str) -> ScheduleSession:
        """Return the session for an entity, seeding it from the device state."""
        session = self._sessions.get(entity_id)
        if session is not None:
            return session

        schedule = await async_read_schedule(self.hass, entity_id)
        surface = ServiceInputSurface()
        session = ScheduleSession(entity_id, ScheduleEditor(schedule, surface=surface), surface)
        session.remove_listener = session.editor.add_listener(
            lambda change: self._handle_change(entity_id, change)
        )
        self._sessions[entity_id] = session
        _LOGGER.info(f"Opened schedule session for {entity_id}")
        return session

    async def async_get_editor(self, entity_id: str) -> ScheduleEditor:
        return (await self.async_get_session(entity_id)).editor

    async def async_reload(self, entity_id: str) -> ScheduleEditor:
        """Discard the working copy and read the schedule again."""
        editor = await self.async_get_editor(entity_id)
        editor.set_weekly_schedule(await async_read_schedule(self.hass, entity_id))
        _LOGGER.info(f"Reloaded schedule for {entity_id}")
        return editor

    async def async_save(self, entity_id: str) -> None:
        editor = await self.async_get_editor(entity_id)
        await async_save_schedule(self.hass, entity_id, editor.weekly_schedule, self.base_topic)

    def close(self, entity_id: str) -> None:
        session = self._sessions.pop(entity_id, None)
        if session is None:
            return
        if session.editor.drag is not None:
            session.editor.drag.cancel()
        if session.remove_listener is not None:
            session.remove_listener()
        _LOGGER.info(f"Closed schedule session for {entity_id}")

    def close_all(self) -> None:
        for entity_id in list(self._sessions):
            self.close(entity_id)

    @callback
    def _handle_change(self, entity_id: str, change: ScheduleChange) -> None:
        event_type = EVENT_SCHEDULE_COMMITTED if change.committed else EVENT_SCHEDULE_PREVIEW
        self.hass.bus.async_fire(event_type, {
            "entity_id": entity_id,
            "day": change.day,
            "schedule": serialize_day_schedule(change.schedule),
            "transitions": change.schedule.as_list(),
        })

        if change.committed and self.auto_save:
            self.hass.async_create_task(self._async_auto_save(entity_id))

    async def _async_auto_save(self, entity_id: str) -> None:
        try:
            await self.async_save(entity_id)
        except ScheduleSaveError as err:
            _LOGGER.error(f"Auto-save failed for {entity_id}: {err}")
