"""Tests for per-entity editing sessions."""
import json

from custom_components.trvzb_scheduler.const import EVENT_SCHEDULE_COMMITTED, EVENT_SCHEDULE_PREVIEW
from custom_components.trvzb_scheduler.drag import POINTER_DOWN, POINTER_MOVE, POINTER_UP, InputEvent
from custom_components.trvzb_scheduler.session import ScheduleSessionManager, ServiceInputSurface

from .conftest import ENTITY_ID, IDENTITY_CTM


class TestServiceInputSurface:
    def test_dispatch_reaches_listeners_of_type(self):
        surface = ServiceInputSurface()
        received = []
        surface.add_listener(POINTER_MOVE, received.append)
        surface.dispatch(InputEvent(POINTER_MOVE, 1, 2))
        surface.dispatch(InputEvent(POINTER_UP, 1, 2))
        assert [e.type for e in received] == [POINTER_MOVE]

    def test_unsubscribe(self):
        surface = ServiceInputSurface()
        remove = surface.add_listener(POINTER_MOVE, lambda event: None)
        assert surface.listener_count(POINTER_MOVE) == 1
        remove()
        remove()
        assert surface.listener_count() == 0

    def test_handler_may_unsubscribe_during_dispatch(self):
        surface = ServiceInputSurface()
        calls = []

        def handler(event):
            calls.append(event)
            remove()

        remove = surface.add_listener(POINTER_UP, handler)
        surface.add_listener(POINTER_UP, calls.append)
        surface.dispatch(InputEvent(POINTER_UP, 0, 0))
        assert len(calls) == 2

    def test_geometry(self):
        surface = ServiceInputSurface()
        assert surface.screen_ctm() is None
        surface.update_geometry(ctm=IDENTITY_CTM, rect=(0, 0, 800, 350))
        assert surface.screen_ctm().determinant == 1.0
        assert surface.bounding_rect().width == 800


class TestScheduleSessionManager:
    async def test_session_seeded_from_sensors(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass)
        editor = await manager.async_get_editor(ENTITY_ID)
        assert editor.day_schedule("saturday").times == ["00:00", "08:00", "23:00"]
        assert manager.entity_ids == [ENTITY_ID]

    async def test_session_is_reused(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass)
        first = await manager.async_get_session(ENTITY_ID)
        assert await manager.async_get_session(ENTITY_ID) is first

    async def test_commit_fires_bus_event(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass, auto_save=False)
        editor = await manager.async_get_editor(ENTITY_ID)
        editor.add_transition(day="saturday", time="12:00", temperature=19.0)

        hass.bus.async_fire.assert_called_once()
        event_type, data = hass.bus.async_fire.call_args.args
        assert event_type == EVENT_SCHEDULE_COMMITTED
        assert data["entity_id"] == ENTITY_ID
        assert data["day"] == "saturday"
        assert data["schedule"] == "00:00/18 08:00/21 12:00/19 23:00/18"
        assert [t["time"] for t in data["transitions"]] == ["00:00", "08:00", "12:00", "23:00"]
        assert hass.created_tasks == []

    async def test_drag_fires_preview_then_commit(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass, auto_save=False)
        session = await manager.async_get_session(ENTITY_ID)
        session.surface.update_geometry(ctm=IDENTITY_CTM)
        editor = session.editor
        mapper = editor.mapper
        target = editor.day_schedule().transitions[1]

        editor.press(target.id, InputEvent(POINTER_DOWN, mapper.hour_to_x(6), mapper.temp_to_y(21), pointer_id=1))
        session.surface.dispatch(InputEvent(POINTER_MOVE, mapper.hour_to_x(7), mapper.temp_to_y(21), pointer_id=1))
        session.surface.dispatch(InputEvent(POINTER_UP, mapper.hour_to_x(7), mapper.temp_to_y(21), pointer_id=1))

        fired = [call.args[0] for call in hass.bus.async_fire.call_args_list]
        assert fired == [EVENT_SCHEDULE_PREVIEW, EVENT_SCHEDULE_COMMITTED]

    async def test_commit_auto_saves(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass, base_topic="z2m", auto_save=True)
        editor = await manager.async_get_editor(ENTITY_ID)
        editor.add_transition(day="sunday", time="12:00", temperature=19.0)

        assert len(hass.created_tasks) == 1
        await hass.created_tasks[0]

        topic = hass.services.async_call.call_args.args[2]["topic"]
        payload = json.loads(hass.services.async_call.call_args.args[2]["payload"])
        assert topic == "z2m/living_room_trvzb/set"
        assert payload["weekly_schedule"]["sunday"] == "00:00/18 08:00/21 12:00/19 23:00/18"

    async def test_auto_save_failure_is_logged(self, hass, sensor_states, caplog):
        hass.services.async_call.side_effect = RuntimeError("broker down")
        manager = ScheduleSessionManager(hass, auto_save=True)
        editor = await manager.async_get_editor(ENTITY_ID)
        editor.add_transition(day="sunday", time="12:00", temperature=19.0)

        await hass.created_tasks[0]
        assert f"Auto-save failed for {ENTITY_ID}" in caplog.text
        assert editor.day_schedule("sunday").times == ["00:00", "08:00", "12:00", "23:00"]

    async def test_reload_discards_edits(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass, auto_save=False)
        editor = await manager.async_get_editor(ENTITY_ID)
        editor.add_transition(day="sunday", time="12:00", temperature=19.0)

        await manager.async_reload(ENTITY_ID)
        assert editor.day_schedule("sunday").times == ["00:00", "08:00", "23:00"]

    async def test_close_stops_events(self, hass, sensor_states):
        manager = ScheduleSessionManager(hass, auto_save=False)
        editor = await manager.async_get_editor(ENTITY_ID)
        manager.close_all()

        editor.add_transition(day="sunday", time="12:00", temperature=19.0)
        hass.bus.async_fire.assert_not_called()
        assert manager.get_session(ENTITY_ID) is None
