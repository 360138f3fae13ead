from __future__ import annotations

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv

from .const import (
    CONF_AUTO_SAVE,
    CONF_MQTT_BASE_TOPIC,
    DEFAULT_AUTO_SAVE,
    DEFAULT_MQTT_BASE_TOPIC,
    DOMAIN,
)

TITLE = "TRVZB Scheduler"


def _settings_schema(defaults: dict) -> vol.Schema:
    return vol.Schema({
        vol.Optional(
            CONF_MQTT_BASE_TOPIC,
            default=defaults.get(CONF_MQTT_BASE_TOPIC, DEFAULT_MQTT_BASE_TOPIC),
        ): cv.string,
        vol.Optional(
            CONF_AUTO_SAVE,
            default=defaults.get(CONF_AUTO_SAVE, DEFAULT_AUTO_SAVE),
        ): cv.boolean,
    })


def _clean_settings(user_input: dict) -> dict:
    base_topic = str(user_input.get(CONF_MQTT_BASE_TOPIC, DEFAULT_MQTT_BASE_TOPIC)).strip().strip("/")
    return {
        CONF_MQTT_BASE_TOPIC: base_topic or DEFAULT_MQTT_BASE_TOPIC,
        CONF_AUTO_SAVE: bool(user_input.get(CONF_AUTO_SAVE, DEFAULT_AUTO_SAVE)),
    }


class TrvzbSchedulerConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: dict | None = None):
        # Only allow a single entry
        if self._async_current_entries():
            return self.async_abort(reason="already_configured")

        if user_input is not None:
            return self.async_create_entry(title=TITLE, data=_clean_settings(user_input))

        return self.async_show_form(step_id="user", data_schema=_settings_schema({}))

    async def async_step_import(self, user_input: dict | None = None):
        # YAML configuration is imported once into a config entry
        if self._async_current_entries():
            return self.async_abort(reason="already_configured")
        return self.async_create_entry(title=TITLE, data=_clean_settings(user_input or {}))

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        return TrvzbSchedulerOptionsFlow()


class TrvzbSchedulerOptionsFlow(config_entries.OptionsFlow):
    async def async_step_init(self, user_input: dict | None = None):
        if user_input is not None:
            return self.async_create_entry(title="", data=_clean_settings(user_input))

        current = {**self.config_entry.data, **self.config_entry.options}
        return self.async_show_form(step_id="init", data_schema=_settings_schema(current))
