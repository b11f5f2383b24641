"""Acoustic confidence radius.

The radius is the distance sound travels during the assumed timing error of
the sensor network. It is an upper-bound circle drawn around every event,
not a statistical fit to the contributing sensors.
"""

from __future__ import annotations

from pygunshot._constants import ASSUMED_TIMING_ERROR_S, SPEED_OF_SOUND_MPS
from pygunshot.models.event import GunshotEvent

# Exactly 34.3 m; the raw float product is off in the last digit.
CONFIDENCE_RADIUS_M: float = round(SPEED_OF_SOUND_MPS * ASSUMED_TIMING_ERROR_S, 6)


def compute_radius(event: GunshotEvent | None = None) -> float:
    """Confidence radius in meters for *event* (34.3 m for every event)."""
    return CONFIDENCE_RADIUS_M
