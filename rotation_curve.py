"""
rotation_curve.py
=================
Orbital parameters of galaxy particles as a function of radius.

Every particle moves on an ellipse around the galactic centre.  The ellipse
shape (eccentricity), its orientation (tilt, growing linearly with radius so
that nested ellipses form a density-wave spiral) and the orbital angular
velocity are all pure functions of the semi-major axis and the generation
parameters.

Rotation curve
--------------
``v(r) = 20000 · sqrt(G · (M_halo(r) + M_disc(r) + M_z) / r)``  [km/s]

with an isothermal-halo and an exponential-disc mass term.  Switching dark
matter off drops the halo term, which gives the Keplerian falloff of a disc
alone.  The angular velocity is ``360° / period`` with
``period = 2πr / v`` in years (r in parsec).

Radii at or below ``R_EPSILON`` are clamped to it before any ``/ r`` term so
the centre produces finite values.

All functions accept scalars or numpy arrays.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

GRAVITY = 6.672e-11
PC_TO_KM = 3.08567758129e13
SEC_PER_YEAR = 365.25 * 86400

VELOCITY_SCALE = 20_000.0
CENTRAL_MASS = 100.0       # M_z

DISC_THICKNESS = 2000.0
DISC_DENSITY = 1.0
DISC_SCALE = 2000.0

HALO_DENSITY = 0.15
HALO_CORE = 2500.0

R_EPSILON = 1e-3


def _clamp_radius(r):
    return np.maximum(np.asarray(r, dtype=np.float64), R_EPSILON)


def mass_disc(r):
    """Exponential-disc mass inside radius *r*."""
    r = np.asarray(r, dtype=np.float64)
    return DISC_DENSITY * np.exp(-r / DISC_SCALE) * (r * r) * math.pi * DISC_THICKNESS


def mass_halo(r):
    """Isothermal-halo mass inside radius *r*."""
    r = np.asarray(r, dtype=np.float64)
    return HALO_DENSITY / (1.0 + (r / HALO_CORE) ** 2) * (4.0 * math.pi * r ** 3 / 3.0)


class RotationCurveModel:
    """Eccentricity, tilt and angular velocity per radius.

    Parameters
    ----------
    core_radius   : radius of the galactic core
    galaxy_radius : radius of the visible disc
    ex1, ex2      : eccentricity (b/a) at the core edge and at the disc edge
    angle         : tilt offset per unit radius (radians per parsec)
    dark_matter   : include the halo mass term in the rotation curve
    far_radius    : edge of the outer halo; defaults to ``2 · galaxy_radius``
    """

    def __init__(
        self,
        core_radius: float,
        galaxy_radius: float,
        ex1: float,
        ex2: float,
        angle: float,
        dark_matter: bool = True,
        far_radius: Optional[float] = None,
    ) -> None:
        if not 0 < core_radius < galaxy_radius:
            raise ValueError(
                f"need 0 < core_radius < galaxy_radius, got "
                f"{core_radius} and {galaxy_radius}"
            )
        self.core_radius = float(core_radius)
        self.galaxy_radius = float(galaxy_radius)
        self.far_radius = float(far_radius if far_radius is not None else 2.0 * galaxy_radius)
        if self.far_radius <= self.galaxy_radius:
            raise ValueError("far_radius must lie beyond galaxy_radius")
        self.ex1 = float(ex1)
        self.ex2 = float(ex2)
        self.angle = float(angle)
        self.dark_matter = bool(dark_matter)

    def eccentricity(self, r):
        """Axis ratio b/a: 1 → ex1 across the core, ex1 → ex2 across the
        disc, ex2 → 1 out to ``far_radius``, and 1 beyond."""
        r_arr = np.asarray(r, dtype=np.float64)
        core, gal, far = self.core_radius, self.galaxy_radius, self.far_radius

        result = np.select(
            [
                r_arr <= core,
                r_arr <= gal,
                r_arr < far,
            ],
            [
                1.0 + r_arr / core * (self.ex1 - 1.0),
                self.ex1 + (r_arr - core) / (gal - core) * (self.ex2 - self.ex1),
                self.ex2 + (r_arr - gal) / (far - gal) * (1.0 - self.ex2),
            ],
            default=1.0,
        )
        return float(result) if np.ndim(r) == 0 else result

    def angular_offset(self, r):
        result = np.asarray(r, dtype=np.float64) * self.angle
        return float(result) if np.ndim(r) == 0 else result

    def velocity(self, r):
        """Circular velocity in km/s."""
        r_arr = _clamp_radius(r)
        mass = mass_disc(r_arr) + CENTRAL_MASS
        if self.dark_matter:
            mass = mass + mass_halo(r_arr)
        result = VELOCITY_SCALE * np.sqrt(GRAVITY * mass / r_arr)
        return float(result) if np.ndim(r) == 0 else result

    def orbital_velocity(self, r):
        """Angular velocity in degrees per year."""
        r_arr = _clamp_radius(r)
        circumference_km = 2.0 * math.pi * r_arr * PC_TO_KM
        period_years = circumference_km / (np.asarray(self.velocity(r_arr)) * SEC_PER_YEAR)
        result = 360.0 / period_years
        return float(result) if np.ndim(r) == 0 else result


# ---------------------------------------------------------------------------
# Per-frame placement
# ---------------------------------------------------------------------------

def particle_positions(
    theta0,
    vel_theta,
    time: float,
    tilt_angle,
    a,
    b,
    pert_n: int = 0,
    pert_amp: float = 0.0,
) -> np.ndarray:
    """Planar positions of particles at *time*.

    Stateless: the orbital angle is ``theta0 + vel_theta · time`` (degrees),
    the ellipse with semi-axes ``a`` and ``b`` is rotated by ``tilt_angle``
    (radians), and an optional ``2·pert_n``-fold sinusoidal term of amplitude
    ``a / pert_amp`` adds the extra spiral arms.

    Returns
    -------
    ndarray of shape ``(N, 2)``.
    """
    theta = np.asarray(theta0, dtype=np.float64) + np.asarray(vel_theta, dtype=np.float64) * time
    alpha = np.radians(theta)
    beta = -np.asarray(tilt_angle, dtype=np.float64)
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    cos_a, sin_a = np.cos(alpha), np.sin(alpha)
    cos_b, sin_b = np.cos(beta), np.sin(beta)

    x = a * cos_a * cos_b - b * sin_a * sin_b
    y = a * cos_a * sin_b + b * sin_a * cos_b

    if pert_n > 0 and pert_amp > 0:
        x = x + (a / pert_amp) * np.sin(alpha * 2.0 * pert_n)
        y = y + (a / pert_amp) * np.cos(alpha * 2.0 * pert_n)

    return np.column_stack([np.atleast_1d(x), np.atleast_1d(y)])
