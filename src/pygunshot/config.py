"""Engine configuration for pygunshot."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pygunshot import _constants as const
from pygunshot.exceptions import GunshotConfigError
from pygunshot.state.events import MergeMode, WindowPolicy


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_center(value: str) -> tuple[float, float]:
    lat_text, sep, lon_text = value.partition(",")
    if not sep:
        raise GunshotConfigError(f"GUNSHOT_INITIAL_CENTER must be 'lat,lon', got {value!r}")
    try:
        return float(lat_text), float(lon_text)
    except ValueError as exc:
        raise GunshotConfigError(f"GUNSHOT_INITIAL_CENTER must be 'lat,lon', got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class GunshotConfig:
    """Engine configuration.

    Parameters
    ----------
    base_url : str
        Backend base URL (``http`` or ``https``). The stream URL is derived
        from it by swapping the scheme to ``ws``/``wss``.
    stream_path : str
        Path of the streaming endpoint on the backend host.
    sensors_path : str
        Path pulled by the polling variant for the sensor roster.
    events_path : str
        Path pulled by the polling variant for the known events.
    api_token : str or None
        Optional bearer token sent with every request and the stream handshake.
    stream_enabled : bool
        Open the push stream on ``start()``.
    poll_enabled : bool
        Run the periodic HTTP pull loop on ``start()``.
    poll_interval : float
        Seconds between pulls.
    reconnect_delay : float
        Constant backoff in seconds before a dropped stream reconnects.
    request_timeout : float
        Total timeout in seconds for one HTTP pull.
    merge_mode : MergeMode
        How event batches are merged into the store. ``APPEND_DEDUP`` is only
        valid together with ``rolling_horizon``.
    rolling_horizon : float or None
        When set, the store prunes events older than this many seconds on
        every merge.
    window_policy : WindowPolicy
        Initially active window policy.
    skew_tolerance : float
        Forward slack in seconds tolerated for backend clock drift.
    highlight_ttl : float
        Seconds a highlighted event stays highlighted.
    focus_zoom : int
        Zoom used when the view jumps to a new event or a selected row.
    initial_center : tuple of float
        Map center before any event arrives.
    initial_zoom : int
        Map zoom before any event arrives.
    fly_duration : float
        Duration in seconds of an animated fly transition.
    """

    base_url: str = const.BASE_URL
    stream_path: str = const.STREAM_PATH
    sensors_path: str = const.SENSORS_PATH
    events_path: str = const.EVENTS_PATH
    api_token: str | None = None
    stream_enabled: bool = True
    poll_enabled: bool = False
    poll_interval: float = const.POLL_INTERVAL_S
    reconnect_delay: float = const.RECONNECT_DELAY_S
    request_timeout: float = 10.0
    merge_mode: MergeMode = MergeMode.REPLACE
    rolling_horizon: float | None = None
    window_policy: WindowPolicy = WindowPolicy.LAST_1_HOUR
    skew_tolerance: float = const.SKEW_TOLERANCE.total_seconds()
    highlight_ttl: float = const.HIGHLIGHT_TTL_S
    focus_zoom: int = const.FOCUS_ZOOM
    initial_center: tuple[float, float] = const.DEFAULT_CENTER
    initial_zoom: int = const.DEFAULT_ZOOM
    fly_duration: float = const.FLY_DURATION_S

    def __post_init__(self) -> None:
        # Coerce string values coming from env/overrides into their enums.
        try:
            object.__setattr__(self, "merge_mode", MergeMode(self.merge_mode))
        except ValueError as exc:
            raise GunshotConfigError(f"Unknown merge mode: {self.merge_mode!r}") from exc
        try:
            object.__setattr__(self, "window_policy", WindowPolicy.parse(self.window_policy))
        except ValueError as exc:
            raise GunshotConfigError(str(exc)) from exc

        if self.merge_mode == MergeMode.APPEND_DEDUP and self.rolling_horizon is None:
            raise GunshotConfigError("APPEND_DEDUP merging requires a rolling_horizon")
        if self.rolling_horizon is not None and self.rolling_horizon <= 0:
            raise GunshotConfigError(f"rolling_horizon must be positive, got {self.rolling_horizon}")
        if self.poll_interval <= 0:
            raise GunshotConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.reconnect_delay < 0:
            raise GunshotConfigError(f"reconnect_delay must not be negative, got {self.reconnect_delay}")
        if self.highlight_ttl <= 0:
            raise GunshotConfigError(f"highlight_ttl must be positive, got {self.highlight_ttl}")
        if not self.base_url.startswith(("http://", "https://")):
            raise GunshotConfigError(f"base_url must be http(s), got {self.base_url!r}")

    @property
    def stream_url(self) -> str:
        """WebSocket URL of the streaming endpoint."""
        base = self.base_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://") :]
        else:
            base = "ws://" + base[len("http://") :]
        return f"{base}{self.stream_path}"

    @classmethod
    def live(cls, **overrides: Any) -> GunshotConfig:
        """Preset for the rolling-window live feed.

        The stream only ever appends newer events, the store bounds itself to
        the rolling horizon, and the view shows the last 10 seconds.
        """
        values: dict[str, Any] = {
            "merge_mode": MergeMode.APPEND_DEDUP,
            "rolling_horizon": const.LIVE_ROLLING_HORIZON_S,
            "window_policy": WindowPolicy.LAST_10_SECONDS,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, **overrides: Any) -> GunshotConfig:
        """Create configuration from environment variables.

        Reads optional ``GUNSHOT_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        GunshotConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "GUNSHOT_BASE_URL": "base_url",
            "GUNSHOT_STREAM_PATH": "stream_path",
            "GUNSHOT_SENSORS_PATH": "sensors_path",
            "GUNSHOT_EVENTS_PATH": "events_path",
            "GUNSHOT_API_TOKEN": "api_token",
            "GUNSHOT_MERGE_MODE": "merge_mode",
            "GUNSHOT_WINDOW": "window_policy",
        }
        _ENV_FLOAT_MAP = {
            "GUNSHOT_POLL_INTERVAL": "poll_interval",
            "GUNSHOT_RECONNECT_DELAY": "reconnect_delay",
            "GUNSHOT_REQUEST_TIMEOUT": "request_timeout",
            "GUNSHOT_ROLLING_HORIZON": "rolling_horizon",
            "GUNSHOT_SKEW_TOLERANCE": "skew_tolerance",
            "GUNSHOT_HIGHLIGHT_TTL": "highlight_ttl",
            "GUNSHOT_FLY_DURATION": "fly_duration",
        }
        _ENV_INT_MAP = {
            "GUNSHOT_FOCUS_ZOOM": "focus_zoom",
            "GUNSHOT_INITIAL_ZOOM": "initial_zoom",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise GunshotConfigError(f"{env_key} must be a number, got {val!r}") from exc

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = int(val)
            except ValueError as exc:
                raise GunshotConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        center_env = env.get("GUNSHOT_INITIAL_CENTER")
        if center_env is not None and "initial_center" not in overrides:
            config_kwargs["initial_center"] = _env_center(center_env)

        if "stream_enabled" not in overrides:
            config_kwargs["stream_enabled"] = _env_bool(env.get("GUNSHOT_STREAM_ENABLED"), True)
        if "poll_enabled" not in overrides:
            config_kwargs["poll_enabled"] = _env_bool(env.get("GUNSHOT_POLL_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
