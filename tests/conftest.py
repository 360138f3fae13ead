"""Shared fixtures for TRVZB Scheduler tests."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.trvzb_scheduler.codec import parse_day_schedule
from custom_components.trvzb_scheduler.const import DAYS, DOMAIN
from custom_components.trvzb_scheduler.editor import ScheduleEditor
from custom_components.trvzb_scheduler.models import WeeklySchedule
from custom_components.trvzb_scheduler.session import ServiceInputSurface

ENTITY_ID = "climate.living_room_trvzb"
IDENTITY_CTM = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


def make_state(state, attributes=None):
    mock_state = MagicMock()
    mock_state.state = state
    mock_state.attributes = attributes or {}
    return mock_state


@pytest.fixture
def states():
    """Entity id -> state object, served through hass.states.get."""
    return {}


@pytest.fixture
def hass(states):
    hass = MagicMock()
    hass.data = {}
    hass.states.get.side_effect = states.get
    hass.services.async_call = AsyncMock()
    hass.bus.async_fire = MagicMock()

    created = []
    hass.created_tasks = created
    hass.async_create_task = MagicMock(side_effect=created.append)
    yield hass

    # Coroutines a test did not await
    for coro in created:
        coro.close()


@pytest.fixture
def sensor_states(states):
    """Day sensors for ENTITY_ID with a weekday/weekend pattern."""
    for day in DAYS:
        if day in ("saturday", "sunday"):
            value = "00:00/18 08:00/21 23:00/18"
        else:
            value = "00:00/18 06:00/21 08:00/17 17:00/21 22:00/18"
        states[f"sensor.living_room_trvzb_weekly_schedule_{day}"] = make_state(value)
    states[ENTITY_ID] = make_state("heat", {"friendly_name": "Living room", "current_temperature": 19.5})
    return states


@pytest.fixture
def surface():
    surface = ServiceInputSurface()
    surface.update_geometry(ctm=IDENTITY_CTM)
    return surface


@pytest.fixture
def monday_week():
    """Default week with a three-transition Monday."""
    return WeeklySchedule().replace_day("monday", parse_day_schedule("00:00/20 06:00/22 08:00/18"))


@pytest.fixture
def editor(monday_week, surface):
    return ScheduleEditor(monday_week, surface=surface)


@pytest.fixture
def changes(editor):
    """Every change the editor emits."""
    received = []
    editor.add_listener(received.append)
    return received


@pytest.fixture
def domain_data(hass):
    hass.data[DOMAIN] = {}
    return hass.data[DOMAIN]
