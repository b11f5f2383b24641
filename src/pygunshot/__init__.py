"""pygunshot - Async synchronization engine for a live gunshot-detection map."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygunshot")
except PackageNotFoundError:
    __version__ = "0+local"
from pygunshot.confidence import compute_radius
from pygunshot.config import GunshotConfig
from pygunshot.engine import GunshotEngine
from pygunshot.exceptions import (
    GunshotConfigError,
    GunshotError,
    GunshotPayloadError,
    GunshotTransportError,
)
from pygunshot.focus import FocusController
from pygunshot.models import (
    ConnectionState,
    DashboardSnapshot,
    EstimatedLocation,
    EventBatch,
    EventOverlay,
    GunshotEvent,
    RosterUpdate,
    Sensor,
    TransitionKind,
    TriggeredMic,
    ViewState,
)
from pygunshot.state.events import MergeMode, WindowPolicy
from pygunshot.state.store import EventStore, StoreSnapshot
from pygunshot.state.window import apply_window

__all__ = [
    "__version__",
    "ConnectionState",
    "DashboardSnapshot",
    "EstimatedLocation",
    "EventBatch",
    "EventOverlay",
    "EventStore",
    "FocusController",
    "GunshotConfig",
    "GunshotConfigError",
    "GunshotEngine",
    "GunshotError",
    "GunshotEvent",
    "GunshotPayloadError",
    "GunshotTransportError",
    "MergeMode",
    "RosterUpdate",
    "Sensor",
    "StoreSnapshot",
    "TransitionKind",
    "TriggeredMic",
    "ViewState",
    "WindowPolicy",
    "apply_window",
    "compute_radius",
]
