"""Internal constants shared across the library."""

from datetime import timedelta

BASE_URL = "http://127.0.0.1:8000"
STREAM_PATH = "/ws"
SENSORS_PATH = "/get_sensors"
EVENTS_PATH = "/gunshot_events"
USER_AGENT = "pygunshot"

# ------------------------------------------------------------------
# Timing
# ------------------------------------------------------------------

RECONNECT_DELAY_S = 5.0
POLL_INTERVAL_S = 10.0
HIGHLIGHT_TTL_S = 3.0
SKEW_TOLERANCE = timedelta(seconds=60)
LIVE_ROLLING_HORIZON_S = 10.0

# ------------------------------------------------------------------
# Map view
# ------------------------------------------------------------------

DEFAULT_CENTER: tuple[float, float] = (42.3351, -83.0469)
DEFAULT_ZOOM = 15
FOCUS_ZOOM = 18
FLY_DURATION_S = 1.5
HIGHLIGHT_RADIUS_M = 150.0

# ------------------------------------------------------------------
# Acoustic confidence
# ------------------------------------------------------------------

SPEED_OF_SOUND_MPS = 343.0
ASSUMED_TIMING_ERROR_S = 0.1  # 100 ms

MICROS_PER_SECOND = 1_000_000
