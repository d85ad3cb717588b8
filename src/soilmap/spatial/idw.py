"""Inverse Distance Weighting (IDW) interpolation.

Distances are Euclidean in degree space, not geodesic. This stretches the
east-west falloff relative to north-south away from the equator; good enough
for a visual overlay of a single region.
"""

import math
from typing import Optional, Protocol, Sequence


class ValuedPoint(Protocol):
    lat: float
    lon: float
    value: float


# Below this distance (degrees) a target is treated as sitting on the sample
EXACT_MATCH_EPSILON = 0.001

DEFAULT_POWER = 2.0
DEFAULT_MAX_DISTANCE = 2.0  # degrees


def idw_interpolate(
    target_lat: float,
    target_lon: float,
    samples: Sequence[ValuedPoint],
    power: float = DEFAULT_POWER,
    max_distance: float = DEFAULT_MAX_DISTANCE,
) -> Optional[float]:
    """Estimate a value at a target coordinate from nearby samples.

    Samples farther than ``max_distance`` are ignored. A sample closer than
    EXACT_MATCH_EPSILON returns its own value immediately; otherwise the
    result is the mean of sample values weighted by ``1 / distance**power``.

    Args:
        target_lat: Latitude of the target
        target_lon: Longitude of the target
        samples: Points with ``lat``, ``lon`` and ``value`` attributes
        power: Falloff exponent (higher = nearer samples dominate more)
        max_distance: Search radius in degrees

    Returns:
        Interpolated value, or None if no sample lies within max_distance

    Examples:
        >>> from soilmap.cache.models import SamplePoint
        >>> pts = [SamplePoint(0, 0, 0.0, ""), SamplePoint(10, 0, 100.0, "")]
        >>> idw_interpolate(5, 0, pts, power=2, max_distance=20)
        50.0
    """
    weight_sum = 0.0
    value_sum = 0.0

    for sample in samples:
        distance = math.hypot(target_lat - sample.lat, target_lon - sample.lon)

        if distance > max_distance:
            continue

        if distance < EXACT_MATCH_EPSILON:
            return sample.value

        weight = 1.0 / distance**power
        weight_sum += weight
        value_sum += weight * sample.value

    if weight_sum == 0:
        return None

    return value_sum / weight_sum


def nearest_sample_distance(
    target_lat: float,
    target_lon: float,
    samples: Sequence[ValuedPoint],
) -> Optional[float]:
    """Distance in degrees from a target to the closest sample (None if no samples)."""
    if not samples:
        return None
    return min(
        math.hypot(target_lat - sample.lat, target_lon - sample.lon)
        for sample in samples
    )
