"""The TRVZB Scheduler integration."""
import logging

from homeassistant import config_entries
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.typing import ConfigType

from .const import (
    CONF_AUTO_SAVE,
    CONF_MQTT_BASE_TOPIC,
    DEFAULT_AUTO_SAVE,
    DEFAULT_MQTT_BASE_TOPIC,
    DOMAIN,
)
from .services import async_get_services  # noqa: F401
from .session import ScheduleSessionManager

_LOGGER = logging.getLogger(__name__)


def _entry_setting(entry: ConfigEntry, key: str, default):
    # Options override the values chosen when the entry was created
    return entry.options.get(key, entry.data.get(key, default))


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up via YAML by importing into a config entry, else no-op."""
    if DOMAIN in config:
        hass.async_create_task(
            hass.config_entries.flow.async_init(
                DOMAIN,
                context={"source": config_entries.SOURCE_IMPORT},
                data=dict(config[DOMAIN] or {}),
            )
        )
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up TRVZB Scheduler from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    manager = ScheduleSessionManager(
        hass,
        base_topic=_entry_setting(entry, CONF_MQTT_BASE_TOPIC, DEFAULT_MQTT_BASE_TOPIC),
        auto_save=_entry_setting(entry, CONF_AUTO_SAVE, DEFAULT_AUTO_SAVE),
    )
    hass.data[DOMAIN]["manager"] = manager
    _LOGGER.info(
        f"TRVZB Scheduler ready (base topic '{manager.base_topic}', auto save {manager.auto_save})"
    )

    # Avoid re-registering services
    if not hass.data[DOMAIN].get("services_registered"):
        from . import services as service_module
        await service_module.async_setup_services(hass)
        hass.data[DOMAIN]["services_registered"] = True

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    data = hass.data.get(DOMAIN, {})
    manager: ScheduleSessionManager | None = data.get("manager")
    if manager is not None:
        manager.close_all()

    if data.get("services_registered"):
        from . import services as service_module
        service_module.async_unload_services(hass)

    hass.data.pop(DOMAIN, None)
    return True
