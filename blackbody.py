"""
blackbody.py
============
Approximate colour of a black body at a given temperature.

Uses a piecewise curve fit of the CIE 1964 10° colour-matching data in sRGB
(valid 1 000 K – 40 000 K; inputs are clipped to that range).  Output is
RGBA in ``[0, 1]`` with alpha fixed at 1.
"""

from __future__ import annotations

import numpy as np

T_MIN = 1_000.0
T_MAX = 40_000.0


def temperature_to_rgba(kelvin) -> np.ndarray:
    """Map temperature(s) in Kelvin to RGBA rows.

    Parameters
    ----------
    kelvin : scalar or array of shape ``(N,)``

    Returns
    -------
    float32 ndarray of shape ``(4,)`` for a scalar, else ``(N, 4)``.
    """
    t = np.clip(np.asarray(kelvin, dtype=np.float64), T_MIN, T_MAX) / 100.0
    hot = t > 66.0

    with np.errstate(invalid="ignore", divide="ignore"):
        red = np.where(hot, 329.698727446 * np.power(t - 60.0, -0.1332047592), 255.0)
        green = np.where(
            hot,
            288.1221695283 * np.power(t - 60.0, -0.0755148492),
            99.4708025861 * np.log(t) - 161.1195681661,
        )
        blue = np.where(
            t >= 66.0,
            255.0,
            np.where(t <= 19.0, 0.0, 138.5177312231 * np.log(t - 10.0) - 305.0447927307),
        )

    rgb = np.clip(np.stack([red, green, blue], axis=-1), 0.0, 255.0) / 255.0
    alpha = np.ones(rgb.shape[:-1] + (1,))
    return np.concatenate([rgb, alpha], axis=-1).astype(np.float32)
