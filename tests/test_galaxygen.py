"""Tests for the galaxy generator pipeline."""

from __future__ import annotations

import dataclasses
import os

import numpy as np
import pytest

from galaxygen import (
    GalaxyConfig,
    GalaxyGenerator,
    GalaxySnapshot,
    ParticleType,
    StarFieldConfig,
)
from hyperlanes import count_components
from spatial_index import StarSystemIndex


def small_config(**overrides) -> GalaxyConfig:
    return dataclasses.replace(GalaxyConfig(star_count=1000, seed=11), **overrides)


def small_field(**overrides) -> StarFieldConfig:
    return dataclasses.replace(StarFieldConfig(samples=60, seed=11), **overrides)


@pytest.fixture(scope="module")
def generated() -> GalaxyGenerator:
    gen = GalaxyGenerator(small_config(), small_field())
    gen.update()
    return gen


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------

class TestConfig:
    def test_defaults(self) -> None:
        cfg = GalaxyConfig()
        assert cfg.galaxy_radius == 13_000.0
        assert cfg.core_radius == pytest.approx(4030.0)
        assert cfg.far_radius == pytest.approx(26_000.0)
        assert cfg.has_changed

    def test_angle_range(self) -> None:
        assert GalaxyConfig(delta_angle=0.0).angle == pytest.approx(1e-4)
        assert GalaxyConfig(delta_angle=1.0).angle == pytest.approx(8e-4)

    def test_take_snapshot_clears_flag(self) -> None:
        cfg = GalaxyConfig(star_count=123)
        snap = cfg.take_snapshot()
        assert not cfg.has_changed
        assert not snap.has_changed
        assert snap.star_count == 123

        cfg.star_count = 456
        assert snap.star_count == 123


# ---------------------------------------------------------------------------
# Particles
# ---------------------------------------------------------------------------

class TestParticles:
    def test_category_counts(self, generated: GalaxyGenerator) -> None:
        snap = generated.snapshot()
        assert len(snap.of_type(ParticleType.STAR)) == 1000
        assert len(snap.of_type(ParticleType.DUST)) == 1000
        filaments = len(snap.of_type(ParticleType.FILAMENT))
        assert 0 < filaments <= 10 * 100

    def test_star_radii_within_far_halo(self, generated: GalaxyGenerator) -> None:
        stars = generated.snapshot().of_type(ParticleType.STAR)
        assert stars["a"].min() >= 0.0
        assert stars["a"].max() <= 26_000.0 + 1e-2

    def test_stars_concentrate_inside_disc(self, generated: GalaxyGenerator) -> None:
        stars = generated.snapshot().of_type(ParticleType.STAR)
        assert np.mean(stars["a"] < 13_000.0) > 0.5

    def test_orbit_shape_follows_model(self, generated: GalaxyGenerator) -> None:
        stars = generated.snapshot().of_type(ParticleType.STAR)
        a = stars["a"].astype(np.float64)
        model = generated.model
        np.testing.assert_allclose(stars["b"], a * model.eccentricity(a), rtol=1e-5)
        np.testing.assert_allclose(stars["tilt_angle"], model.angular_offset(a),
                                   rtol=1e-5, atol=1e-7)

    def test_dust_temperature_grows_with_radius(self, generated: GalaxyGenerator) -> None:
        dust = generated.snapshot().of_type(ParticleType.DUST)
        np.testing.assert_allclose(dust["temp"], 2700.0 + dust["a"] / 4.5, rtol=1e-5)

    def test_filaments_are_cooler_than_dust(self, generated: GalaxyGenerator) -> None:
        fil = generated.snapshot().of_type(ParticleType.FILAMENT)
        np.testing.assert_allclose(fil["temp"], 2700.0 + fil["a"] / 4.5 - 1000.0,
                                   rtol=1e-5, atol=1e-2)
        assert np.all(fil["a"] >= 0.0)

    def test_magnitudes_in_range(self, generated: GalaxyGenerator) -> None:
        mag = generated.snapshot().particles["mag"]
        assert mag.min() > 0.0 and mag.max() <= 1.0

    def test_colours_filled(self, generated: GalaxyGenerator) -> None:
        colors = generated.snapshot().particles["color"]
        assert np.all(colors[:, 3] == 1.0)
        assert np.all(colors[:, :3].sum(axis=1) > 0.0)

    def test_same_seed_is_reproducible(self, generated: GalaxyGenerator) -> None:
        other = GalaxyGenerator(small_config(), small_field())
        other.update()
        assert other.particles.span().tobytes() == generated.particles.span().tobytes()
        assert other.systems.span().tobytes() == generated.systems.span().tobytes()

    @pytest.mark.parametrize("flag,kind", [
        ("stars_enabled", ParticleType.STAR),
        ("dust_enabled", ParticleType.DUST),
        ("filaments_enabled", ParticleType.FILAMENT),
    ])
    def test_disabled_category_is_absent(self, flag: str, kind: ParticleType) -> None:
        gen = GalaxyGenerator(small_config(**{flag: False}), small_field(samples=0))
        gen.update()
        snap = gen.snapshot()
        assert len(snap.of_type(kind)) == 0
        assert len(snap.particles) > 0

    def test_zero_stars(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=0), small_field(samples=0))
        assert gen.update()
        assert len(gen.particles) == 0
        assert gen.snapshot().positions().shape == (0, 2)
        assert gen.run_checks()["star_count"]


# ---------------------------------------------------------------------------
# Star systems and hyperlanes
# ---------------------------------------------------------------------------

class TestStarField:
    def test_systems_inside_annulus(self, generated: GalaxyGenerator) -> None:
        pos = generated.systems.span()["position"]
        assert 0 < len(pos) <= 60
        r = np.hypot(pos[:, 0], pos[:, 2])
        assert r.min() >= 2.0 - 1e-4
        assert r.max() <= 15.0 + 1e-4
        np.testing.assert_array_equal(pos[:, 1], 0.0)

    def test_systems_respect_min_distance(self, generated: GalaxyGenerator) -> None:
        pos = generated.systems.span()["position"].astype(np.float64)
        d = np.linalg.norm(pos[:, None, :] - pos[None, :, :], axis=2)
        d[np.diag_indices(len(pos))] = np.inf
        assert d.min() >= 1.0 - 1e-4

    def test_hyperlanes_span_all_systems(self, generated: GalaxyGenerator) -> None:
        n = len(generated.systems)
        lanes = generated.snapshot().lane_indices()
        assert lanes.shape == (n - 1, 2)
        assert count_components(n, lanes) == 1

    def test_systems_registered_in_index(self, generated: GalaxyGenerator) -> None:
        assert len(generated.index) == len(generated.systems)
        first = generated.systems.span()["position"][0]
        assert generated.index.nearest(first).index == 0

    def test_custom_index_is_used(self) -> None:
        index = StarSystemIndex()
        gen = GalaxyGenerator(small_config(star_count=0), small_field(samples=10), index)
        gen.update()
        assert len(index) == len(gen.systems) > 0

    def test_hyperlanes_disabled(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=0),
                              small_field(hyperlanes_enabled=False))
        gen.update()
        assert len(gen.systems) > 0
        assert len(gen.hyperlanes) == 0

    def test_empty_field(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=0), small_field(outer_radius=0.0))
        gen.update()
        assert len(gen.systems) == 0
        assert len(gen.hyperlanes) == 0


# ---------------------------------------------------------------------------
# Tick / snapshot protocol
# ---------------------------------------------------------------------------

class TestUpdate:
    def test_dirty_flag_consumed_once(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=200), small_field(samples=10))
        assert gen.update()
        assert gen.generation == 1
        assert not gen.cfg.has_changed
        assert not gen.star_field.has_changed

        assert not gen.update()
        assert gen.generation == 1

    def test_time_advances_every_tick(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=0, time_step=500.0),
                              small_field(samples=0))
        for _ in range(3):
            gen.update()
        assert gen.time == pytest.approx(1500.0)
        assert gen.snapshot().time == pytest.approx(1500.0)

    def test_config_edit_regenerates(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=200), small_field(samples=10))
        gen.update()
        systems_before = gen.systems.span().copy()

        gen.cfg.star_count = 300
        gen.cfg.has_changed = True
        assert gen.update()
        assert gen.generation == 2
        assert len(gen.snapshot().of_type(ParticleType.STAR)) == 300
        # the star field was not dirty and keeps its contents
        assert gen.systems.span().tobytes() == systems_before.tobytes()

    def test_needs_upload_protocol(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=100), small_field(samples=0))
        assert not gen.needs_upload
        gen.update()
        assert gen.needs_upload
        gen.acknowledge_upload()
        assert not gen.needs_upload
        gen.update()
        assert not gen.needs_upload

    def test_snapshot_is_read_only(self, generated: GalaxyGenerator) -> None:
        snap = generated.snapshot()
        assert isinstance(snap, GalaxySnapshot)
        with pytest.raises(ValueError):
            snap.particles["mag"][0] = 1.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.generation = 99

    def test_snapshot_uses_generation_config(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=100, pert_n=3), small_field(samples=0))
        gen.update()
        gen.cfg.pert_n = 5
        assert gen.snapshot().pert_n == 3

    def test_regeneration_makes_old_snapshot_stale(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=200, seed=1), small_field(samples=0))
        gen.update()
        snap = gen.snapshot()
        before = snap.particles.tobytes()
        assert snap.is_current(gen)

        gen.cfg.seed = 2
        gen.cfg.has_changed = True
        gen.update()

        # the spans alias arena storage and now hold the new generation
        assert snap.particles.tobytes() != before
        assert not snap.is_current(gen)
        assert gen.snapshot().is_current(gen)

    def test_idle_tick_keeps_snapshot_current(self) -> None:
        gen = GalaxyGenerator(small_config(star_count=100), small_field(samples=0))
        gen.update()
        snap = gen.snapshot()
        gen.update()
        assert snap.is_current(gen)

    def test_positions_move_over_time(self, generated: GalaxyGenerator) -> None:
        snap = generated.snapshot()
        start = snap.positions(at_time=0.0)
        later = snap.positions(at_time=1e7)
        assert start.shape == (len(snap.particles), 2)
        assert not np.allclose(start, later)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

def test_frames(generated: GalaxyGenerator) -> None:
    particles = generated.particles_frame()
    assert set(particles["type"].unique()) == {"star", "dust", "filament"}
    assert {"theta0", "vel_theta", "a", "b", "red", "alpha"} <= set(particles.columns)

    systems = generated.systems_frame()
    assert list(systems["id"]) == list(range(len(generated.systems)))

    lanes = generated.hyperlanes_frame()
    assert list(lanes.columns) == ["source", "destination", "weight"]
    assert (lanes["weight"] > 0).all()


def test_run_checks_pass(generated: GalaxyGenerator) -> None:
    results = generated.run_checks()
    assert results
    assert all(results.values())


def test_checks_use_generated_field_settings() -> None:
    gen = GalaxyGenerator(small_config(star_count=0), small_field(samples=20))
    gen.update()
    # toggled without regenerating: the lanes on hand still belong to the last field
    gen.star_field.hyperlanes_enabled = False
    results = gen.run_checks()
    assert results["hyperlane_count"]
    assert results["hyperlane_connected"]

    gen.update()
    assert gen.run_checks()["hyperlane_count"]


def test_run_writes_csv(tmp_path) -> None:
    gen = GalaxyGenerator(small_config(star_count=300), small_field(samples=20))
    frames = gen.run(out_dir=str(tmp_path), write_gexf=False)
    for name in ("particles", "systems", "hyperlanes"):
        assert os.path.exists(tmp_path / f"{name}.csv")
        assert name in frames
    assert not os.path.exists(tmp_path / "hyperlanes.gexf")


def test_run_writes_gexf(tmp_path) -> None:
    nx = pytest.importorskip("networkx")
    gen = GalaxyGenerator(small_config(star_count=0), small_field(samples=20))
    gen.run(out_dir=str(tmp_path))
    graph = nx.read_gexf(str(tmp_path / "hyperlanes.gexf"))
    assert graph.number_of_nodes() == len(gen.systems)
    assert graph.number_of_edges() == len(gen.systems) - 1
