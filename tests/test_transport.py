"""Tests for reading and publishing schedules."""
import json

import pytest

from custom_components.trvzb_scheduler.codec import parse_day_schedule
from custom_components.trvzb_scheduler.models import WeeklySchedule
from custom_components.trvzb_scheduler.transport import (
    ScheduleSaveError,
    async_read_schedule,
    async_save_schedule,
    derive_day_sensor_entity_id,
    extract_device_name,
    get_entity_info,
    get_schedule_from_attributes,
    get_schedule_from_sensors,
)

from .conftest import ENTITY_ID, make_state


class TestEntityNames:
    def test_extract_device_name(self):
        assert extract_device_name("climate.living_room_trvzb") == "living_room_trvzb"
        assert extract_device_name("bedroom") == "bedroom"

    def test_derive_day_sensor(self):
        assert derive_day_sensor_entity_id(ENTITY_ID, "monday") == "sensor.living_room_trvzb_weekly_schedule_monday"


class TestReadSchedule:
    def test_from_sensors(self, hass, sensor_states):
        week = get_schedule_from_sensors(hass, ENTITY_ID)
        assert week.saturday.times == ["00:00", "08:00", "23:00"]
        assert len(week.monday) == 5

    def test_missing_sensor(self, hass, sensor_states, caplog):
        del sensor_states["sensor.living_room_trvzb_weekly_schedule_friday"]
        assert get_schedule_from_sensors(hass, ENTITY_ID) is None
        assert "Missing schedule data for climate.living_room_trvzb: friday" in caplog.text

    @pytest.mark.parametrize("value", ["unavailable", "unknown", ""])
    def test_unusable_sensor_state(self, hass, sensor_states, value):
        sensor_states["sensor.living_room_trvzb_weekly_schedule_monday"] = make_state(value)
        assert get_schedule_from_sensors(hass, ENTITY_ID) is None

    def test_from_attributes(self, hass, states):
        states[ENTITY_ID] = make_state("heat", {"weekly_schedule": {"monday": "00:00/17 07:00/21"}})
        week = get_schedule_from_attributes(hass, ENTITY_ID)
        assert week.monday.to_pairs() == [("00:00", 17.0), ("07:00", 21.0)]
        assert week.sunday.to_pairs() == [("00:00", 20.0)]

    def test_attribute_with_wrong_type(self, hass, states):
        states[ENTITY_ID] = make_state("heat", {"weekly_schedule": "00:00/17"})
        assert get_schedule_from_attributes(hass, ENTITY_ID) is None

    async def test_prefers_sensors(self, hass, sensor_states):
        sensor_states[ENTITY_ID] = make_state("heat", {"weekly_schedule": {"monday": "00:00/30"}})
        week = await async_read_schedule(hass, ENTITY_ID)
        assert week.monday.to_pairs()[0] == ("00:00", 18.0)

    async def test_falls_back_to_default_week(self, hass):
        week = await async_read_schedule(hass, ENTITY_ID)
        assert all(day.to_pairs() == [("00:00", 20.0)] for _, day in week.items())


class TestSaveSchedule:
    async def test_publishes_weekly_schedule(self, hass):
        week = WeeklySchedule().replace_day("monday", parse_day_schedule("00:00/18 06:00/21.5"))
        await async_save_schedule(hass, ENTITY_ID, week, "z2m")

        hass.services.async_call.assert_awaited_once()
        domain, service, data = hass.services.async_call.call_args.args
        assert (domain, service) == ("mqtt", "publish")
        assert hass.services.async_call.call_args.kwargs == {"blocking": True}
        assert data["topic"] == "z2m/living_room_trvzb/set"

        payload = json.loads(data["payload"])
        assert list(payload["weekly_schedule"]) == [
            "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
        ]
        assert payload["weekly_schedule"]["monday"] == "00:00/18 06:00/21.5"

    async def test_failure_raises_save_error(self, hass, caplog):
        hass.services.async_call.side_effect = RuntimeError("broker down")
        with pytest.raises(ScheduleSaveError):
            await async_save_schedule(hass, ENTITY_ID, WeeklySchedule())
        assert "broker down" in caplog.text


class TestEntityInfo:
    def test_entity_info(self, hass, sensor_states):
        info = get_entity_info(hass, ENTITY_ID)
        assert info.name == "Living room"
        assert info.available
        assert info.current_temp == 19.5

    def test_missing_entity(self, hass):
        assert get_entity_info(hass, ENTITY_ID) is None
