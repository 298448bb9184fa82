"""
galaxygen.py
============
Core procedural galaxy generator.

Synthesizes the particle population of a spiral galaxy (stars, dust and dust
filaments) from a handful of physical parameters, plus a field of star
systems connected by a minimum-spanning "hyperlane" network.

Particles do not carry positions.  Each record stores the parameters of its
elliptical orbit (semi-axes, tilt, start angle, angular velocity); the
consumer places it at any time ``t`` with ``rotation_curve.particle_positions``.
The spiral pattern comes from the tilt growing with radius (density waves),
so nothing has to be integrated between frames.

Pipeline
--------
A – radial CDF built from the bulge/disc intensity profile; radii drawn per
    category by inverse-CDF sampling.
B – eccentricity, tilt and angular velocity per radius from the rotation-curve
    model; records written into the particle arena.
C – star systems seeded by Poisson-disc sampling inside an annulus; hyperlanes
    derived by Kruskal's MST over the systems' planar positions.
D – colour rebuild (black-body colour per temperature); "needs upload" set.

Regeneration is driven by the ``has_changed`` flags of ``GalaxyConfig`` and
``StarFieldConfig``.  ``GalaxyGenerator.update()`` is one tick: it snapshots
a dirty config (clearing its flag in the same call), regenerates what changed
and advances the simulation clock.

Usage (importable)
------------------
    from galaxygen import GalaxyConfig, GalaxyGenerator
    gen = GalaxyGenerator(GalaxyConfig(star_count=20_000, seed=7))
    gen.update()
    snap = gen.snapshot()
    xy = snap.positions()

Usage (script, uses all defaults)
----------------------------------
    python galaxygen.py
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import os
import time
from typing import Dict, Optional

import numpy as np
import pandas as pd

import poisson_disc
from arena import DynamicArena
from blackbody import temperature_to_rgba
from density import RadialDensitySampler
from hyperlanes import build_hyperlanes, count_components
from rotation_curve import RotationCurveModel, particle_positions
from spatial_index import Box, StarSystem, StarSystemIndex

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Record layouts
# ---------------------------------------------------------------------------

class ParticleType(enum.IntEnum):
    STAR = 0
    DUST = 1
    FILAMENT = 2


PARTICLE_DTYPE = np.dtype([
    ("theta0",     np.float32),    # start angle on the orbit, degrees
    ("vel_theta",  np.float32),    # angular velocity, degrees / year
    ("tilt_angle", np.float32),    # ellipse rotation, radians
    ("a",          np.float32),    # semi-major axis
    ("b",          np.float32),    # semi-minor axis
    ("temp",       np.float32),    # Kelvin
    ("mag",        np.float32),    # brightness 0-1
    ("type",       np.int32),      # ParticleType
    ("color",      np.float32, (4,)),
])

SYSTEM_DTYPE = np.dtype([
    ("position", np.float32, (3,)),
    ("scale",    np.float32),
    ("temp",     np.float32),
    ("color",    np.float32, (4,)),
])

HYPERLANE_DTYPE = np.dtype([
    ("source",      np.int32),
    ("destination", np.int32),
    ("weight",      np.float32),
])

SYSTEM_EXTENT = (0.1, 0.1, 0.1)


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class GalaxyConfig:
    """Tunable parameters of the particle galaxy.

    Spatial units are parsec, time is in years.  Set ``has_changed`` after
    editing a field to have the next ``GalaxyGenerator.update()`` regenerate.

    Notes on ANGLE
    --------------
    ``delta_angle ∈ [0, 1]`` maps linearly onto a tilt rate of 1e-4 … 8e-4
    radians per parsec.  Larger values wind the spiral more tightly.
    """

    # ---- animation ----
    time_step: float = 2000.0        # years advanced per tick

    # ---- shape ----
    galaxy_radius: float = 13_000.0
    core: float = 0.31               # core radius as a fraction of galaxy_radius
    delta_angle: float = 0.43
    ex1: float = 0.63                # axis ratio at the core edge
    ex2: float = 1.09                # axis ratio at the disc edge

    # ---- spiral perturbation (applied at render time) ----
    pert_amp: float = 75.0
    pert_n: int = 2

    # ---- appearance ----
    base_temp: float = 2700.0        # dust base temperature, Kelvin
    star_size: float = 8.0
    particle_size: float = 1000.0

    # ---- population ----
    star_count: int = 50_000
    stars_enabled: bool = True
    dust_enabled: bool = True
    filaments_enabled: bool = True

    # ---- physics ----
    dark_matter: bool = True

    # ---- radial CDF ----
    cdf_steps: int = 1000            # must be even

    # ---- reproducibility ----
    seed: Optional[int] = 7

    # ---- regeneration trigger ----
    has_changed: bool = True

    @property
    def core_radius(self) -> float:
        return self.galaxy_radius * self.core

    @property
    def far_radius(self) -> float:
        return self.galaxy_radius * 2.0

    @property
    def angle(self) -> float:
        lo, hi = 0.0001, 0.0008
        return lo + self.delta_angle * (hi - lo)

    def take_snapshot(self) -> "GalaxyConfig":
        """Frozen-in-time copy for one generation pass; clears ``has_changed``."""
        snap = dataclasses.replace(self, has_changed=False)
        self.has_changed = False
        return snap


@dataclasses.dataclass
class StarFieldConfig:
    """Parameters of the star-system field and its hyperlane network."""

    samples: int = 200               # maximum number of systems
    inner_radius: float = 2.0        # no systems inside this radius
    outer_radius: float = 20.0       # systems fill out to 0.75 × this radius
    min_distance: float = 1.0        # Poisson-disc minimum separation
    max_attempts: int = 30           # Poisson-disc candidates per active point
    hyperlanes_enabled: bool = True
    seed: Optional[int] = 7
    has_changed: bool = True

    def take_snapshot(self) -> "StarFieldConfig":
        snap = dataclasses.replace(self, has_changed=False)
        self.has_changed = False
        return snap


# ---------------------------------------------------------------------------
# Read-only output
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class GalaxySnapshot:
    """What the renderer reads: occupied arena spans plus draw constants.

    The spans are read-only views of arena storage, not copies.  A later
    regeneration rewrites that storage in place, so a held snapshot goes
    stale: ``is_current(generator)`` turns False once the generator's
    ``generation`` has moved past the one recorded here.  Take a fresh
    snapshot (or copy the spans) before reading again.
    """

    particles: np.ndarray
    systems: np.ndarray
    hyperlanes: np.ndarray
    generation: int
    time: float
    pert_n: int
    pert_amp: float
    star_size: float
    particle_size: float

    def is_current(self, generator: "GalaxyGenerator") -> bool:
        """True while the arenas still hold the data this snapshot was taken from."""
        return self.generation == generator.generation

    def positions(self, at_time: Optional[float] = None) -> np.ndarray:
        """Planar particle positions at *at_time* (default: snapshot time)."""
        p = self.particles
        return particle_positions(
            p["theta0"], p["vel_theta"],
            self.time if at_time is None else at_time,
            p["tilt_angle"], p["a"], p["b"],
            self.pert_n, self.pert_amp,
        )

    def of_type(self, kind: ParticleType) -> np.ndarray:
        return self.particles[self.particles["type"] == int(kind)]

    def lane_indices(self) -> np.ndarray:
        """Hyperlanes as an ``(M, 2)`` index array (line-list order)."""
        return np.column_stack([self.hyperlanes["source"], self.hyperlanes["destination"]])


# ---------------------------------------------------------------------------
# Main generator class
# ---------------------------------------------------------------------------

class GalaxyGenerator:
    """Regenerates particle and system arenas when their configs change.

    Parameters
    ----------
    cfg           : GalaxyConfig  – particle galaxy parameters
    star_field    : StarFieldConfig – system field parameters (defaults used
                    when omitted)
    spatial_index : index receiving one box per system; a fresh
                    ``StarSystemIndex`` when omitted
    """

    def __init__(
        self,
        cfg: GalaxyConfig,
        star_field: Optional[StarFieldConfig] = None,
        spatial_index: Optional[StarSystemIndex] = None,
    ) -> None:
        self.cfg = cfg
        self.star_field = star_field if star_field is not None else StarFieldConfig()
        self.index = spatial_index if spatial_index is not None else StarSystemIndex()

        self.particles = DynamicArena(PARTICLE_DTYPE, max(cfg.star_count, 1))
        self.systems = DynamicArena(SYSTEM_DTYPE, max(self.star_field.samples, 1), growth=16)
        self.hyperlanes = DynamicArena(HYPERLANE_DTYPE, 64)

        self.sampler: Optional[RadialDensitySampler] = None
        self.model: Optional[RotationCurveModel] = None

        self.time = 0.0
        self.generation = 0
        self.needs_upload = False
        self._snapshot_cfg = dataclasses.replace(cfg, has_changed=False)
        self._snapshot_field = dataclasses.replace(self.star_field, has_changed=False)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def update(self) -> bool:
        """Run one simulation tick; return True if anything was regenerated."""
        changed = False

        if self.cfg.has_changed:
            self._snapshot_cfg = self.cfg.take_snapshot()
            self.generate_particles(self._snapshot_cfg)
            changed = True

        if self.star_field.has_changed:
            self._snapshot_field = self.star_field.take_snapshot()
            self.generate_star_field(self._snapshot_field)
            changed = True

        if changed:
            self._rebuild_colors()
            self.generation += 1
            self.needs_upload = True

        self.time += self.cfg.time_step
        return changed

    def snapshot(self) -> GalaxySnapshot:
        cfg = self._snapshot_cfg
        return GalaxySnapshot(
            particles=self.particles.span(),
            systems=self.systems.span(),
            hyperlanes=self.hyperlanes.span(),
            generation=self.generation,
            time=self.time,
            pert_n=cfg.pert_n,
            pert_amp=cfg.pert_amp,
            star_size=cfg.star_size,
            particle_size=cfg.particle_size,
        )

    def acknowledge_upload(self) -> None:
        """Called by the renderer once the current snapshot is on the device."""
        self.needs_upload = False

    # ------------------------------------------------------------------
    # Stage A + B: particles
    # ------------------------------------------------------------------

    def _emit(
        self,
        kind: ParticleType,
        a: np.ndarray,
        b: np.ndarray,
        theta0: np.ndarray,
        vel_theta: np.ndarray,
        temp: np.ndarray,
        mag: np.ndarray,
    ) -> None:
        s = self.particles.allocate_many(len(a))
        rec = self.particles.raw[s]
        rec["a"] = a
        rec["b"] = b
        rec["tilt_angle"] = self.model.angular_offset(a)
        rec["theta0"] = theta0
        rec["vel_theta"] = vel_theta
        rec["temp"] = temp
        rec["mag"] = mag
        rec["type"] = int(kind)
        rec["color"] = 0.0

    def generate_particles(self, cfg: GalaxyConfig) -> None:
        """Clear the particle arena and repopulate it from *cfg*."""
        t0 = time.perf_counter()
        self.particles.clear()

        n = max(int(cfg.star_count), 0)
        if n == 0 or not (cfg.stars_enabled or cfg.dust_enabled or cfg.filaments_enabled):
            logger.debug("Particle generation skipped (no enabled particles).")
            return

        rng = np.random.default_rng(cfg.seed)
        self.sampler = RadialDensitySampler(
            1.0, 0.02, cfg.galaxy_radius / 3.0, cfg.core_radius,
            0.0, cfg.far_radius, cfg.cdf_steps,
        )
        self.model = RotationCurveModel(
            cfg.core_radius, cfg.galaxy_radius, cfg.ex1, cfg.ex2, cfg.angle,
            dark_matter=cfg.dark_matter, far_radius=cfg.far_radius,
        )

        # Pre-size so the pass never reallocates (filaments: ≤ 100 per seed)
        expected = (n * cfg.stars_enabled + n * cfg.dust_enabled
                    + (n // 100) * 100 * cfg.filaments_enabled)
        self.particles.reserve(expected)

        if cfg.stars_enabled:
            self._generate_stars(cfg, rng, n)
        if cfg.dust_enabled:
            self._generate_dust(cfg, rng, n)
        if cfg.filaments_enabled:
            self._generate_filaments(cfg, rng, n // 100)

        logger.debug(
            "Generated %d particles in %.3fs",
            len(self.particles), time.perf_counter() - t0,
        )

    def _generate_stars(self, cfg: GalaxyConfig, rng: np.random.Generator, n: int) -> None:
        model = self.model
        r = self.sampler.sample(rng, n)
        theta0 = 360.0 * rng.random(n)
        temp = 6000.0 + 4000.0 * rng.random(n)
        mag = 0.1 + 0.4 * rng.random(n)

        # a small fraction of brighter stars
        bright = n // 60
        mag[:bright] = np.minimum(mag[:bright] + 0.1 + 0.4 * rng.random(bright), 1.0)

        self._emit(ParticleType.STAR, r, r * model.eccentricity(r), theta0,
                   model.orbital_velocity(r), temp, mag)

    def _generate_dust(self, cfg: GalaxyConfig, rng: np.random.Generator, n: int) -> None:
        """Even indices follow the density profile, odd ones fill a uniform
        square so the dust extends into a faint outer halo."""
        model = self.model
        R = cfg.galaxy_radius
        r = np.empty(n)
        r[0::2] = self.sampler.sample(rng, len(r[0::2]))
        xy = 2.0 * R * rng.random((len(r[1::2]), 2)) - R
        r[1::2] = np.hypot(xy[:, 0], xy[:, 1])

        b = r * model.eccentricity(r)
        theta0 = 360.0 * rng.random(n)
        mag = 0.02 + 0.15 * rng.random(n)

        self._emit(ParticleType.DUST, r, b, theta0,
                   model.orbital_velocity((r + b) / 2.0),
                   cfg.base_temp + r / 4.5, mag)

    def _generate_filaments(self, cfg: GalaxyConfig, rng: np.random.Generator, seeds: int) -> None:
        """Each seed spawns a random-walk cluster of up to 100 particles that
        share an orbit angle, giving the dark-lane look of dust filaments."""
        if seeds <= 0:
            return
        model = self.model
        R = cfg.galaxy_radius

        xy = 2.0 * R * rng.random((seeds, 2)) - R
        r0 = np.hypot(xy[:, 0], xy[:, 1])
        theta = 360.0 * rng.random(seeds)
        mag0 = 0.1 + 0.05 * rng.random(seeds)
        counts = (100.0 * rng.random(seeds)).astype(np.int64)

        total = int(counts.sum())
        if total == 0:
            return
        seed_of = np.repeat(np.arange(seeds), counts)

        # radial random walk, restarted at every seed
        step = 200.0 - 400.0 * rng.random(total)
        walked = np.cumsum(step)
        starts = np.cumsum(counts) - counts
        before = np.concatenate([[0.0], walked])[starts]
        r = np.abs(r0[seed_of] + walked - np.repeat(before, counts))

        b = r * model.eccentricity(r)
        theta0 = theta[seed_of] + 10.0 - 20.0 * rng.random(total)
        mag = mag0[seed_of] + 0.025 * rng.random(total)

        self._emit(ParticleType.FILAMENT, r, b, theta0,
                   model.orbital_velocity((r + b) / 2.0),
                   cfg.base_temp + r / 4.5 - 1000.0, mag)

    # ------------------------------------------------------------------
    # Stage C: star systems and hyperlanes
    # ------------------------------------------------------------------

    def generate_star_field(self, field: StarFieldConfig) -> None:
        """Seed systems by Poisson-disc sampling and connect them by an MST.

        Candidates are sampled over a ``1.5·outer_radius`` square, ordered by
        distance from its centre, restricted to the annulus
        ``[inner_radius, 0.75·outer_radius]`` and capped at ``samples``.
        """
        t0 = time.perf_counter()
        self.systems.clear()
        self.hyperlanes.clear()
        self.index.clear()

        size = field.outer_radius * 1.5
        if size <= 0 or field.samples <= 0:
            logger.debug("Star field skipped (empty domain).")
            return

        rng = np.random.default_rng(field.seed)
        origin = np.array([size / 2.0, 0.0, size / 2.0])

        pts = poisson_disc.sample_3d(size, size, field.min_distance,
                                     field.max_attempts, rng)
        d2 = np.sum((pts - origin)[:, [0, 2]] ** 2, axis=1)
        order = np.argsort(d2, kind="stable")
        pts, d2 = pts[order], d2[order]
        keep = (d2 >= field.inner_radius ** 2) & (d2 <= (field.outer_radius * 0.75) ** 2)
        pts = pts[keep][: field.samples] - origin

        n = len(pts)
        s = self.systems.allocate_many(n)
        rec = self.systems.raw[s]
        rec["position"] = pts
        rec["scale"] = np.maximum(rng.normal(0.05, 0.02, n), 0.005)
        rec["temp"] = rng.uniform(4000.0, 10000.0, n)

        for i, p in enumerate(pts):
            pos = (float(p[0]), float(p[1]), float(p[2]))
            self.index.insert(Box(pos, SYSTEM_EXTENT), StarSystem(i, pos))

        if field.hyperlanes_enabled:
            lanes = build_hyperlanes(pts)
            s = self.hyperlanes.allocate_many(len(lanes))
            rec = self.hyperlanes.raw[s]
            rec["source"] = [lane.source for lane in lanes]
            rec["destination"] = [lane.destination for lane in lanes]
            rec["weight"] = [lane.weight for lane in lanes]

        logger.debug(
            "Star field: %d systems, %d hyperlanes in %.3fs",
            n, len(self.hyperlanes), time.perf_counter() - t0,
        )

    # ------------------------------------------------------------------
    # Stage D: colour rebuild
    # ------------------------------------------------------------------

    def _rebuild_colors(self) -> None:
        particles = self.particles.raw
        if len(particles):
            particles["color"] = temperature_to_rgba(particles["temp"])
        systems = self.systems.raw
        if len(systems):
            systems["color"] = temperature_to_rgba(systems["temp"])

    # ------------------------------------------------------------------
    # Tabular views
    # ------------------------------------------------------------------

    def particles_frame(self) -> pd.DataFrame:
        p = self.particles.span()
        df = pd.DataFrame({name: p[name] for name in PARTICLE_DTYPE.names if name != "color"})
        df["type"] = pd.Categorical.from_codes(
            p["type"], categories=[t.name.lower() for t in ParticleType]
        )
        for i, channel in enumerate(("red", "green", "blue", "alpha")):
            df[channel] = p["color"][:, i]
        return df

    def systems_frame(self) -> pd.DataFrame:
        s = self.systems.span()
        return pd.DataFrame({
            "id":    np.arange(len(s), dtype=np.int64),
            "x":     s["position"][:, 0],
            "y":     s["position"][:, 1],
            "z":     s["position"][:, 2],
            "scale": s["scale"],
            "temp":  s["temp"],
            "red":   s["color"][:, 0],
            "green": s["color"][:, 1],
            "blue":  s["color"][:, 2],
        })

    def hyperlanes_frame(self) -> pd.DataFrame:
        h = self.hyperlanes.span()
        return pd.DataFrame({
            "source":      h["source"].astype(np.int64),
            "destination": h["destination"].astype(np.int64),
            "weight":      h["weight"].astype(np.float64),
        })

    # ------------------------------------------------------------------
    # Acceptance tests
    # ------------------------------------------------------------------

    def run_checks(self) -> Dict[str, bool]:
        """Check the current arenas against the config; log and return results."""
        cfg = self._snapshot_cfg
        p = self.particles.span()
        stars = p[p["type"] == int(ParticleType.STAR)]
        results: Dict[str, bool] = {}

        sep = "─" * 52
        logger.info(sep)
        logger.info("  ACCEPTANCE TESTS")
        logger.info(sep)

        expected = cfg.star_count if cfg.stars_enabled else 0
        results["star_count"] = len(stars) == expected
        logger.info("  Star count : %6d  (target %d)  %s",
                    len(stars), expected, "✓" if results["star_count"] else "✗ FAIL")

        if len(stars):
            a = stars["a"]
            results["star_radius"] = bool(a.min() >= 0.0 and a.max() <= cfg.far_radius + 1e-3)
            logger.info("  Star radii : [%.1f, %.1f] within [0, %.1f]  %s",
                        a.min(), a.max(), cfg.far_radius,
                        "✓" if results["star_radius"] else "✗ FAIL")

        n_sys = len(self.systems)
        n_lanes = len(self.hyperlanes)
        if n_sys > 0 and self._snapshot_field.hyperlanes_enabled:
            results["hyperlane_count"] = n_lanes == n_sys - 1
            logger.info("  Hyperlanes : %6d  (systems %d)  %s", n_lanes, n_sys,
                        "✓" if results["hyperlane_count"] else "✗ FAIL")

            h = self.hyperlanes.span()
            components = count_components(n_sys, zip(h["source"], h["destination"]))
            results["hyperlane_connected"] = components == 1
            logger.info("  Components : %6d  %s", components,
                        "✓" if results["hyperlane_connected"] else "✗ FAIL")
        else:
            logger.info("  (no hyperlanes to check)")

        logger.info(sep)
        return results

    # ------------------------------------------------------------------
    # GEXF export
    # ------------------------------------------------------------------

    def _write_gexf(self, out_dir: str) -> None:
        """Export the hyperlane graph as GEXF (requires networkx ≥ 2.0)."""
        try:
            import networkx as nx
        except ImportError:
            logger.warning("networkx not found – skipping GEXF export.  "
                           "Install with: pip install networkx")
            return

        G = nx.Graph()
        for row in self.systems_frame().itertuples(index=False):
            G.add_node(int(row.id), x=float(row.x), z=float(row.z), temp=float(row.temp))
        for row in self.hyperlanes_frame().itertuples(index=False):
            G.add_edge(int(row.source), int(row.destination), weight=float(row.weight))

        gexf_path = os.path.join(out_dir, "hyperlanes.gexf")
        nx.write_gexf(G, gexf_path)
        logger.info("  Wrote %s", gexf_path)

    # ------------------------------------------------------------------
    # Batch entry point
    # ------------------------------------------------------------------

    def run(self, out_dir: str = "output", write_gexf: bool = True) -> Dict[str, pd.DataFrame]:
        """Force a full regeneration, check it and write CSV outputs.

        Returns
        -------
        dict with ``particles``, ``systems`` and ``hyperlanes`` DataFrames.
        """
        os.makedirs(out_dir, exist_ok=True)
        t_start = time.perf_counter()

        self.cfg.has_changed = True
        self.star_field.has_changed = True

        logger.info("Generating galaxy (%d stars per category) …", self.cfg.star_count)
        self.update()
        logger.info("  %d particles, %d systems, %d hyperlanes in %.2fs",
                    len(self.particles), len(self.systems), len(self.hyperlanes),
                    time.perf_counter() - t_start)

        self.run_checks()

        frames = {
            "particles":  self.particles_frame(),
            "systems":    self.systems_frame(),
            "hyperlanes": self.hyperlanes_frame(),
        }
        for name, df in frames.items():
            path = os.path.join(out_dir, f"{name}.csv")
            df.to_csv(path, index=False)
            logger.info("Wrote %s", path)

        if write_gexf:
            self._write_gexf(out_dir)

        logger.info("Total time: %.2fs", time.perf_counter() - t_start)
        return frames


# ---------------------------------------------------------------------------
# Script entry point (uses all config defaults)
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    from logging_config import setup_logging

    setup_logging()
    GalaxyGenerator(GalaxyConfig()).run()
