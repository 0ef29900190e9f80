"""Color utility helpers used across the renderer."""
from __future__ import annotations

import numpy as np

GAMMA = 2.2
CORRECTION_EXPONENT = 0.72
CORRECTION_GAIN = 0.72


def clamp(value: float, min_value: float, max_value: float) -> float:
    """Clamp *value* between *min_value* and *max_value*."""

    return max(min_value, min(max_value, value))


def gamma_decode(values: np.ndarray | float) -> np.ndarray:
    """Convert gamma-encoded channels to linear light."""

    return np.power(np.maximum(values, 0.0), GAMMA)


def gamma_encode(values: np.ndarray | float) -> np.ndarray:
    """Convert linear-light channels back to gamma-encoded values."""

    return np.power(np.maximum(values, 0.0), 1.0 / GAMMA)


def correction_curve(values: np.ndarray | float, *, inverse: bool = False) -> np.ndarray:
    """Apply the skin color-correction curve to normalized channels.

    The forward curve is ``x ** 0.72 * 0.72``; the inverse undoes it.
    """

    values = np.maximum(np.asarray(values, dtype=np.float64), 0.0)
    if inverse:
        return np.power(values / CORRECTION_GAIN, 1.0 / CORRECTION_EXPONENT)
    return np.power(values, CORRECTION_EXPONENT) * CORRECTION_GAIN
