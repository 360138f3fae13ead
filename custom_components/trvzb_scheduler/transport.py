"""Reading and writing TRVZB schedules through Home Assistant and MQTT."""
import json
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from homeassistant.const import STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError

from .codec import parse_weekly_schedule, serialize_weekly_schedule
from .const import DAYS, DEFAULT_MQTT_BASE_TOPIC
from .models import WeeklySchedule, create_default_weekly_schedule

_LOGGER = logging.getLogger(__name__)


class ScheduleSaveError(HomeAssistantError):
    """Publishing a schedule to the device failed."""


@dataclass
class EntityInfo:
    name: str
    available: bool
    current_temp: Optional[float] = None
    target_temp: Optional[float] = None


def extract_device_name(entity_id: str) -> str:
    """climate.living_room_trvzb -> living_room_trvzb."""
    if "." not in entity_id:
        return entity_id
    return entity_id.split(".", 1)[1]


def derive_day_sensor_entity_id(climate_entity_id: str, day: str) -> str:
    """climate.x -> sensor.x_weekly_schedule_<day>."""
    return f"sensor.{extract_device_name(climate_entity_id)}_weekly_schedule_{day}"


def get_schedule_from_sensors(hass: HomeAssistant, climate_entity_id: str) -> Optional[WeeklySchedule]:
    """Read the week from the seven per-day schedule sensors.

    Returns None if any day sensor is missing or has no usable state.
    """
    payload: Dict[str, str] = {}
    missing_days: List[str] = []

    for day in DAYS:
        sensor_id = derive_day_sensor_entity_id(climate_entity_id, day)
        state = hass.states.get(sensor_id)
        if state is None:
            _LOGGER.warning(f"Day sensor not found: {sensor_id}")
            missing_days.append(day)
            continue
        if not state.state or state.state in (STATE_UNAVAILABLE, STATE_UNKNOWN):
            _LOGGER.warning(f"No schedule state on sensor: {sensor_id}")
            missing_days.append(day)
            continue
        payload[day] = state.state

    if missing_days:
        _LOGGER.warning(f"Missing schedule data for {climate_entity_id}: {', '.join(missing_days)}")
        return None

    return parse_weekly_schedule(payload)


def get_schedule_from_attributes(hass: HomeAssistant, entity_id: str) -> Optional[WeeklySchedule]:
    """Read the week from the climate entity's own attributes (older Zigbee2MQTT)."""
    state = hass.states.get(entity_id)
    if state is None:
        _LOGGER.warning(f"Entity not found: {entity_id}")
        return None

    payload = state.attributes.get("weekly_schedule") or state.attributes.get("schedule")
    if not payload:
        _LOGGER.debug(f"No schedule attribute on {entity_id}")
        return None
    if not isinstance(payload, dict):
        _LOGGER.error(f"Invalid schedule format on {entity_id}: {payload}")
        return None

    return parse_weekly_schedule(payload)


async def async_read_schedule(hass: HomeAssistant, entity_id: str) -> WeeklySchedule:
    """Best available schedule for an entity, falling back to the default week."""
    schedule = get_schedule_from_sensors(hass, entity_id)
    if schedule is None:
        schedule = get_schedule_from_attributes(hass, entity_id)
    if schedule is None:
        _LOGGER.info(f"No schedule found for {entity_id}, starting from the default week")
        schedule = create_default_weekly_schedule()
    return schedule


async def async_save_schedule(
    hass: HomeAssistant,
    entity_id: str,
    schedule: WeeklySchedule,
    base_topic: str = DEFAULT_MQTT_BASE_TOPIC,
) -> None:
    """Publish the week to the device through mqtt.publish."""
    topic = f"{base_topic}/{extract_device_name(entity_id)}/set"
    payload = json.dumps({"weekly_schedule": serialize_weekly_schedule(schedule)})

    try:
        await hass.services.async_call(
            "mqtt",
            "publish",
            {"topic": topic, "payload": payload},
            blocking=True,
        )
    except Exception as err:
        _LOGGER.error(f"Error saving schedule for {entity_id}: {err}")
        raise ScheduleSaveError(f"Failed to save schedule: {err}") from err

    _LOGGER.info(f"Schedule saved for {entity_id} to {topic}")


def get_entity_info(hass: HomeAssistant, entity_id: str) -> Optional[EntityInfo]:
    state = hass.states.get(entity_id)
    if state is None:
        _LOGGER.warning(f"Entity not found: {entity_id}")
        return None

    attributes = state.attributes
    return EntityInfo(
        name=attributes.get("friendly_name") or entity_id,
        available=state.state != STATE_UNAVAILABLE,
        current_temp=attributes.get("current_temperature"),
        target_temp=attributes.get("temperature") or attributes.get("target_temperature"),
    )
