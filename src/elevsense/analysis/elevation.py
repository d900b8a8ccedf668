"""Elevation-angle estimators for three-axis motion samples.

Two estimators are provided:

- :class:`EwmaElevationFilter` (Algorithm 1) takes the arctangent elevation of
  the acceleration vector and smooths it with an exponentially weighted moving
  average. It keeps the previous filtered value between calls.
- :class:`ComplementaryElevationFilter` (Algorithm 2) blends acceleration and
  angular velocity axis by axis with a fixed weight and takes the elevation of
  the blended vector. It keeps no history.

Neither class is thread-safe; the stream coordinator serialises access.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

DEFAULT_EWMA_ALPHA = 0.9
DEFAULT_COMPLEMENTARY_ALPHA = 0.98
DEFAULT_EPSILON = 1e-6


def _check_alpha(name: str, value: float) -> float:
    alpha = float(value)
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"{name} must be in (0, 1), got {value}")
    return alpha


def elevation_deg(ax: float, ay: float, az: float, *, epsilon: float = DEFAULT_EPSILON) -> float:
    """
    Return ``atan2(az, hypot(ax, ay))`` in degrees.

    A vector whose norm is below ``epsilon`` has no defined direction and
    yields ``0.0``.
    """
    horizontal = math.hypot(ax, ay)
    if math.hypot(horizontal, az) < epsilon:
        return 0.0
    return math.degrees(math.atan2(az, horizontal))


@dataclass
class EwmaElevationFilter:
    """
    Algorithm 1: EWMA-smoothed accelerometer elevation.

    ``filtered = alpha * angle + (1 - alpha) * last_filtered``
    """

    alpha: float = DEFAULT_EWMA_ALPHA
    epsilon: float = DEFAULT_EPSILON
    initial_angle: float = 0.0
    last_filtered_angle: float = field(init=False)

    def __post_init__(self) -> None:
        self.alpha = _check_alpha("alpha", self.alpha)
        self.last_filtered_angle = float(self.initial_angle)

    def reset(self) -> None:
        """Return to the initial condition (used when a stream (re)starts)."""
        self.last_filtered_angle = float(self.initial_angle)

    def compute_ewma_angle(self, ax: float, ay: float, az: float) -> float:
        """
        Feed one acceleration sample and return the filtered elevation.

        Degenerate (zero-length) vectors return ``0.0`` and leave
        ``last_filtered_angle`` untouched.
        """
        if math.hypot(ax, ay, az) < self.epsilon:
            return 0.0
        angle = elevation_deg(ax, ay, az, epsilon=self.epsilon)
        filtered = self.alpha * angle + (1.0 - self.alpha) * self.last_filtered_angle
        self.last_filtered_angle = filtered
        return filtered


@dataclass(frozen=True)
class ComplementaryElevationFilter:
    """Algorithm 2: single-step accelerometer/gyroscope blend."""

    alpha: float = DEFAULT_COMPLEMENTARY_ALPHA
    epsilon: float = DEFAULT_EPSILON

    def __post_init__(self) -> None:
        object.__setattr__(self, "alpha", _check_alpha("alpha", self.alpha))

    def compute_complementary_angle(
        self,
        ax: float,
        ay: float,
        az: float,
        gx: float,
        gy: float,
        gz: float,
    ) -> float:
        a = self.alpha
        bx = a * ax + (1.0 - a) * gx
        by = a * ay + (1.0 - a) * gy
        bz = a * az + (1.0 - a) * gz

        magnitude = math.sqrt(bx * bx + by * by + bz * bz)
        if magnitude < self.epsilon:
            return 0.0
        return math.degrees(math.atan2(by, magnitude))
