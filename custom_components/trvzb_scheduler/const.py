"""Constants for the TRVZB Scheduler integration."""

DOMAIN = "trvzb_scheduler"

# Config entry options
CONF_MQTT_BASE_TOPIC = "mqtt_base_topic"
CONF_AUTO_SAVE = "auto_save"
DEFAULT_MQTT_BASE_TOPIC = "zigbee2mqtt"
DEFAULT_AUTO_SAVE = True

# Days in the order the device payload uses
DAYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
# Days in the order the chart shows them
DISPLAY_DAY_ORDER = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Temperature settings (in Celsius)
MIN_TEMP = 4.0
MAX_TEMP = 35.0
TEMP_STEP = 0.5
DEFAULT_TEMP = 20.0

# Transitions
ANCHOR_TIME = "00:00"
MAX_TRANSITIONS = 6
DEFAULT_NEW_TIME = "12:00"

# Logical chart plane
CHART_WIDTH = 800
CHART_HEIGHT = 350
CHART_PADDING_TOP = 20
CHART_PADDING_RIGHT = 20
CHART_PADDING_BOTTOM = 40
CHART_PADDING_LEFT = 50

# Per-day axis auto-ranging
RANGE_PADDING = 2.0
MIN_RANGE_SPAN = 10.0

# Drag gesture
DRAG_THRESHOLD_PX = 5
SNAP_MINUTES = 15
DOUBLE_ACTIVATION_MS = 400

# Bus events
EVENT_SCHEDULE_PREVIEW = f"{DOMAIN}_schedule_preview"
EVENT_SCHEDULE_COMMITTED = f"{DOMAIN}_schedule_committed"
