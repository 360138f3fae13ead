"""Service definitions and handlers for TRVZB Scheduler."""
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, SupportsResponse
from homeassistant.helpers import config_validation as cv

from .codec import parse_day_schedule, serialize_day_schedule
from .const import DAYS, DOMAIN, MAX_TEMP, MAX_TRANSITIONS, MIN_TEMP
from .coordinates import hour_ticks, temperature_ticks
from .drag import INPUT_EVENTS, PRESS_EVENTS, InputEvent
from .editor import ScheduleEditor
from .models import DaySchedule, new_transition
from .session import ScheduleSessionManager
from .transport import get_entity_info
from .validation import validate_day_schedule

_LOGGER = logging.getLogger(__name__)

SERVICES = (
    "get_schedule",
    "set_day_schedule",
    "add_transition",
    "update_transition",
    "remove_transition",
    "copy_day",
    "validate_schedule",
    "select_day",
    "pointer_event",
    "save_schedule",
    "reload_schedule",
)

TIME_REGEX = r"^([01]\d|2[0-3]):[0-5]\d$"

_DAY = vol.In(DAYS)
_TIME = vol.All(cv.string, vol.Match(TIME_REGEX))
_TEMPERATURE = vol.All(vol.Coerce(float), vol.Range(min=MIN_TEMP, max=MAX_TEMP))
_TRANSITION = vol.Schema({vol.Required("time"): _TIME, vol.Required("temperature"): _TEMPERATURE})

SERVICE_SCHEMAS: Dict[str, vol.Schema] = {
    "get_schedule": vol.Schema({vol.Required("schedule_id"): cv.entity_id}),
    "set_day_schedule": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Required("day"): _DAY,
        # Either the device string ("00:00/20 06:00/22") or a list of transitions
        vol.Required("schedule"): vol.Any(
            cv.string, vol.All([_TRANSITION], vol.Length(min=1, max=MAX_TRANSITIONS))
        ),
    }),
    "add_transition": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Optional("day"): _DAY,
        vol.Optional("time"): _TIME,
        vol.Optional("temperature"): _TEMPERATURE,
    }),
    "update_transition": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Required("transition_id"): cv.string,
        vol.Optional("day"): _DAY,
        vol.Optional("time"): _TIME,
        vol.Optional("temperature"): _TEMPERATURE,
    }),
    "remove_transition": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Required("transition_id"): cv.string,
        vol.Optional("day"): _DAY,
    }),
    "copy_day": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Required("source_day"): _DAY,
        vol.Required("target_days"): vol.All(cv.ensure_list, [_DAY]),
    }),
    "validate_schedule": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Optional("day"): _DAY,
    }),
    "select_day": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Required("day"): _DAY,
    }),
    "pointer_event": vol.Schema({
        vol.Required("schedule_id"): cv.entity_id,
        vol.Required("event_type"): vol.In(INPUT_EVENTS),
        vol.Required("client_x"): vol.Coerce(float),
        vol.Required("client_y"): vol.Coerce(float),
        vol.Optional("pointer_id", default=0): vol.Coerce(int),
        vol.Optional("timestamp"): vol.Coerce(float),
        vol.Optional("transition_id"): cv.string,
        vol.Optional("ctm"): vol.All([vol.Coerce(float)], vol.Length(min=6, max=6)),
        vol.Optional("rect"): vol.All([vol.Coerce(float)], vol.Length(min=4, max=4)),
    }),
    "save_schedule": vol.Schema({vol.Required("schedule_id"): cv.entity_id}),
    "reload_schedule": vol.Schema({vol.Required("schedule_id"): cv.entity_id}),
}


async def async_get_services(hass: HomeAssistant) -> dict[str, Any]:
    """Return service descriptions for the Home Assistant UI."""
    schedule_id = {
        "description": "TRVZB climate entity whose schedule is edited",
        "required": True,
        "example": "climate.living_room_trvzb",
        "selector": {"entity": {"domain": "climate"}},
    }
    day = {
        "description": "Day of the week (sunday ... saturday)",
        "required": False,
        "example": "monday",
        "selector": {"select": {"options": list(DAYS)}},
    }
    transition_id = {
        "description": "Identifier of the transition, as returned by get_schedule",
        "required": True,
        "example": "t-1700000000000-3",
        "selector": {"text": {}},
    }
    time = {
        "description": "Time of day in 24-hour HH:MM",
        "required": False,
        "example": "06:30",
        "selector": {"text": {}},
    }
    temperature = {
        "description": f"Target temperature ({MIN_TEMP}-{MAX_TEMP}°C, 0.5°C steps)",
        "required": False,
        "example": 21.5,
        "selector": {"number": {"min": MIN_TEMP, "max": MAX_TEMP, "step": 0.5, "unit_of_measurement": "°C"}},
    }

    return {
        "get_schedule": {
            "name": "Get TRVZB schedule",
            "description": "Return the working copy of the weekly schedule with transition ids, chart geometry and validation results",
            "fields": {"schedule_id": schedule_id},
        },
        "set_day_schedule": {
            "name": "Set day schedule",
            "description": "Replace one day of the schedule",
            "fields": {
                "schedule_id": schedule_id,
                "day": {**day, "required": True},
                "schedule": {
                    "description": "Day in device format or a list of {time, temperature}",
                    "required": True,
                    "example": "00:00/18 06:00/21 22:00/18",
                },
            },
        },
        "add_transition": {
            "name": "Add transition",
            "description": "Add a transition to a day (ignored when the day already has 6)",
            "fields": {"schedule_id": schedule_id, "day": day, "time": time, "temperature": temperature},
        },
        "update_transition": {
            "name": "Update transition",
            "description": "Change the time or temperature of a transition (the 00:00 transition keeps its time)",
            "fields": {
                "schedule_id": schedule_id,
                "transition_id": transition_id,
                "day": day,
                "time": time,
                "temperature": temperature,
            },
        },
        "remove_transition": {
            "name": "Remove transition",
            "description": "Remove a transition (the 00:00 transition cannot be removed)",
            "fields": {"schedule_id": schedule_id, "transition_id": transition_id, "day": day},
        },
        "copy_day": {
            "name": "Copy day",
            "description": "Copy one day's schedule onto other days",
            "fields": {
                "schedule_id": schedule_id,
                "source_day": {**day, "required": True},
                "target_days": {
                    "description": "Days to overwrite",
                    "required": True,
                    "example": ["tuesday", "wednesday"],
                    "selector": {"select": {"options": list(DAYS), "multiple": True}},
                },
            },
        },
        "validate_schedule": {
            "name": "Validate schedule",
            "description": "Report schedule problems without changing anything",
            "fields": {"schedule_id": schedule_id, "day": day},
        },
        "select_day": {
            "name": "Select day",
            "description": "Select the day shown in the chart",
            "fields": {"schedule_id": schedule_id, "day": {**day, "required": True}},
        },
        "pointer_event": {
            "name": "Pointer event",
            "description": "Forward a chart pointer or touch event to the drag handler",
            "fields": {
                "schedule_id": schedule_id,
                "event_type": {
                    "description": "Event type",
                    "required": True,
                    "example": "pointermove",
                    "selector": {"select": {"options": list(INPUT_EVENTS)}},
                },
                "client_x": {"description": "Viewport x in pixels", "required": True, "example": 120},
                "client_y": {"description": "Viewport y in pixels", "required": True, "example": 80},
                "pointer_id": {"description": "Pointer or touch identifier", "required": False, "example": 1},
                "timestamp": {"description": "Event time in milliseconds", "required": False},
                "transition_id": {"description": "Marker pressed (press events only)", "required": False},
                "ctm": {"description": "Chart screen transform [a, b, c, d, e, f]", "required": False},
                "rect": {"description": "Chart box [left, top, width, height]", "required": False},
            },
        },
        "save_schedule": {
            "name": "Save schedule",
            "description": "Publish the working copy to the device over MQTT",
            "fields": {"schedule_id": schedule_id},
        },
        "reload_schedule": {
            "name": "Reload schedule",
            "description": "Discard unsaved edits and read the schedule from the device again",
            "fields": {"schedule_id": schedule_id},
        },
    }


def _schedule_response(entity_id: str, editor: ScheduleEditor) -> dict:
    week = editor.weekly_schedule
    return {
        "entity_id": entity_id,
        "selected_day": editor.selected_day,
        "temperature_range": [editor.temperature_range.minimum, editor.temperature_range.maximum],
        "schedules": {day: serialize_day_schedule(schedule) for day, schedule in week.items()},
        "transitions": {day: schedule.as_list() for day, schedule in week.items()},
    }


def _chart_response(editor: ScheduleEditor) -> dict:
    """Logical-plane geometry of the selected day, ready to draw."""
    mapper = editor.mapper
    schedule = editor.displayed_schedule()
    return {
        "width": mapper.geometry.width,
        "height": mapper.geometry.height,
        "path": [[x, y] for x, y in mapper.step_path(schedule)],
        "markers": [
            {"id": t.id, "x": mapper.hour_to_x(t.hours), "y": mapper.temp_to_y(t.temperature), "anchor": t.is_anchor}
            for t in schedule
        ],
        "hour_ticks": [{"hour": hour, "x": mapper.hour_to_x(hour)} for hour in hour_ticks()],
        "temperature_ticks": [
            {"temperature": temp, "y": mapper.temp_to_y(temp)}
            for temp in temperature_ticks(mapper.temperature_range)
        ],
    }


def _validation_response(editor: ScheduleEditor, day: Optional[str] = None) -> dict:
    days = [day] if day else list(DAYS)
    results = {}
    for day_key in days:
        result = validate_day_schedule(editor.day_schedule(day_key))
        results[day_key] = {
            "valid": result.valid,
            "violations": [
                {"code": v.code, "message": v.message, "transition_id": v.transition_id}
                for v in result.violations
            ],
        }
    return {"valid": all(r["valid"] for r in results.values()), "days": results}


def _day_schedule_from_input(value) -> DaySchedule:
    if isinstance(value, str):
        return parse_day_schedule(value)
    return DaySchedule(tuple(new_transition(item["time"], item["temperature"]) for item in value))


async def async_setup_services(hass: HomeAssistant) -> None:
    """Set up all services for the TRVZB Scheduler integration."""
    manager: ScheduleSessionManager = hass.data[DOMAIN]["manager"]

    def _require_transition(editor: ScheduleEditor, transition_id: str, day: Optional[str]) -> None:
        if editor.day_schedule(day).find(transition_id) is None:
            raise ValueError(f"Unknown transition '{transition_id}' on {day or editor.selected_day}")

    async def handle_get_schedule(call: ServiceCall) -> dict:
        """Handle get_schedule service call."""
        entity_id = call.data["schedule_id"]
        editor = await manager.async_get_editor(entity_id)
        response = _schedule_response(entity_id, editor)
        info = get_entity_info(hass, entity_id)
        response["entity"] = asdict(info) if info is not None else None
        response["chart"] = _chart_response(editor)
        response["validation"] = _validation_response(editor)
        return response

    async def handle_set_day_schedule(call: ServiceCall) -> None:
        """Handle set_day_schedule service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        if not editor.set_day_schedule(call.data["day"], _day_schedule_from_input(call.data["schedule"])):
            raise ValueError(f"A day holds at most {MAX_TRANSITIONS} transitions")

    async def handle_add_transition(call: ServiceCall) -> None:
        """Handle add_transition service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        added = editor.add_transition(
            day=call.data.get("day"),
            time=call.data.get("time"),
            temperature=call.data.get("temperature"),
        )
        if not added:
            _LOGGER.debug(f"add_transition on {call.data['schedule_id']} was not applied")

    async def handle_update_transition(call: ServiceCall) -> None:
        """Handle update_transition service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        day = call.data.get("day")
        _require_transition(editor, call.data["transition_id"], day)
        editor.update_transition(
            call.data["transition_id"],
            time=call.data.get("time"),
            temperature=call.data.get("temperature"),
            day=day,
        )

    async def handle_remove_transition(call: ServiceCall) -> None:
        """Handle remove_transition service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        day = call.data.get("day")
        _require_transition(editor, call.data["transition_id"], day)
        editor.remove_transition(call.data["transition_id"], day=day)

    async def handle_copy_day(call: ServiceCall) -> None:
        """Handle copy_day service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        editor.copy_day(call.data["source_day"], call.data["target_days"])

    async def handle_validate_schedule(call: ServiceCall) -> dict:
        """Handle validate_schedule service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        return _validation_response(editor, call.data.get("day"))

    async def handle_select_day(call: ServiceCall) -> None:
        """Handle select_day service call."""
        editor = await manager.async_get_editor(call.data["schedule_id"])
        editor.select_day(call.data["day"])

    async def handle_pointer_event(call: ServiceCall) -> None:
        """Handle pointer_event service call."""
        session = await manager.async_get_session(call.data["schedule_id"])
        session.surface.update_geometry(call.data.get("ctm"), call.data.get("rect"))
        event = InputEvent(
            type=call.data["event_type"],
            client_x=call.data["client_x"],
            client_y=call.data["client_y"],
            pointer_id=call.data.get("pointer_id", 0),
            timestamp=call.data.get("timestamp"),
        )

        if event.type in PRESS_EVENTS:
            transition_id = call.data.get("transition_id")
            if transition_id:
                session.editor.press(transition_id, event)
            return

        session.surface.dispatch(event)

    async def handle_save_schedule(call: ServiceCall) -> None:
        """Handle save_schedule service call."""
        await manager.async_save(call.data["schedule_id"])

    async def handle_reload_schedule(call: ServiceCall) -> None:
        """Handle reload_schedule service call."""
        await manager.async_reload(call.data["schedule_id"])

    handlers = {
        "get_schedule": (handle_get_schedule, SupportsResponse.ONLY),
        "set_day_schedule": (handle_set_day_schedule, None),
        "add_transition": (handle_add_transition, None),
        "update_transition": (handle_update_transition, None),
        "remove_transition": (handle_remove_transition, None),
        "copy_day": (handle_copy_day, None),
        "validate_schedule": (handle_validate_schedule, SupportsResponse.ONLY),
        "select_day": (handle_select_day, None),
        "pointer_event": (handle_pointer_event, None),
        "save_schedule": (handle_save_schedule, None),
        "reload_schedule": (handle_reload_schedule, None),
    }

    for service, (handler, supports_response) in handlers.items():
        if supports_response is None:
            hass.services.async_register(DOMAIN, service, handler, SERVICE_SCHEMAS[service])
        else:
            hass.services.async_register(
                DOMAIN, service, handler, SERVICE_SCHEMAS[service], supports_response=supports_response
            )


def async_unload_services(hass: HomeAssistant) -> None:
    for service in SERVICES:
        hass.services.async_remove(DOMAIN, service)
