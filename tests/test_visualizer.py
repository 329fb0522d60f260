"""Tests for the particle visualizer."""

import math
from dataclasses import fields
from types import SimpleNamespace

import pytest

from sfaucet.frames import ManualFrameScheduler
from sfaucet.models import Track
from sfaucet.visualizer import (
    EDGE_MARGIN,
    FeatureState,
    Visualizer,
    VisualizerState,
    _wrap,
    mood_hue,
)


class RecordingSurface:
    def __init__(
        self, width: float = 400, height: float = 300, ratio: float = 1.0, record: bool = True
    ) -> None:
        self.record = record
        self.width = width
        self.height = height
        self.device_pixel_ratio = ratio
        self.scales: list[float] = []
        self.calls: list[tuple] = []

    def _add(self, *call) -> None:
        if self.record:
            self.calls.append(call)

    def get_size(self) -> tuple[float, float]:
        return self.width, self.height

    def set_scale(self, ratio: float) -> None:
        self.scales.append(ratio)

    def fill_rect(self, x, y, w, h, color) -> None:
        self._add("fill_rect", (w, h), color)

    def ellipse(self, cx, cy, rx, ry, rotation, color) -> None:
        self._add("ellipse", (rx, ry), color)

    def polygon(self, points, color) -> None:
        self._add("polygon", tuple(points), color)

    def rounded_rect(self, x, y, w, h, radius, color) -> None:
        self._add("rounded_rect", (w, h, radius), color)

    def glow(self, cx, cy, radius, blur, color) -> None:
        self._add("glow", (radius, blur), color)

    def line(self, x1, y1, x2, y2, width, color) -> None:
        self._add("line", (width,), color)

    def kinds(self) -> list[str]:
        return [c[0] for c in self.calls]


class ConstantRandom:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def _track(level: float = 0.5, **overrides: float) -> Track:
    values = dict(
        danceability=level,
        energy=level,
        valence=level,
        tempo_norm=level,
        loudness_norm=level,
        acousticness=level,
        liveness=level,
        instrumentalness=level,
    )
    values.update(overrides)
    return Track(name="T", artists="A", album="B", uri="spotify:track:t", **values)


def _make(surface=None, rng=None) -> tuple[Visualizer, RecordingSurface, ManualFrameScheduler]:
    surface = surface if surface is not None else RecordingSurface()
    scheduler = ManualFrameScheduler()
    return Visualizer(surface, scheduler, rng=rng), surface, scheduler


class TestFeatureState:
    def test_from_track(self) -> None:
        state = FeatureState.from_track(_track(0.25, tempo_norm=0.7, loudness_norm=0.9))
        assert state.valence == 0.25
        assert state.tempo == 0.7
        assert state.loudness == 0.9

    def test_unusable_values_default_to_zero(self) -> None:
        hostile = SimpleNamespace(
            valence=float("nan"),
            energy=float("inf"),
            danceability=-3,
            tempo_norm=7,
            loudness_norm=None,
            acousticness="loud",
            liveness=True,
        )
        state = FeatureState.from_track(hostile)
        assert state == FeatureState(tempo=1.0)

    def test_blend_toward(self) -> None:
        current = FeatureState(energy=0.0)
        current.blend_toward(FeatureState(energy=1.0), 0.03)
        assert current.energy == pytest.approx(0.03)
        current.blend_toward(FeatureState(energy=1.0), 0.03)
        assert current.energy == pytest.approx(0.03 + 0.97 * 0.03)


class TestLifecycle:
    def test_starts_uninitialized(self) -> None:
        viz, _, scheduler = _make()
        assert viz.state is VisualizerState.UNINITIALIZED
        assert len(scheduler) == 0
        viz.tick()
        assert viz.ticks == 0

    def test_first_track_seeds_current(self) -> None:
        viz, _, scheduler = _make()
        viz.set_track(_track(0.4))
        assert viz.state is VisualizerState.RUNNING
        assert viz.current == viz.target
        assert viz.current is not viz.target
        assert len(scheduler) == 1

    def test_loop_ticks_once_per_frame(self) -> None:
        viz, _, scheduler = _make()
        viz.set_track(_track(0.4))
        scheduler.advance(5)
        assert viz.ticks == 5
        assert viz.time == pytest.approx(5 * 0.016)
        assert len(scheduler) == 1

    def test_set_track_while_running_keeps_one_frame(self) -> None:
        viz, _, scheduler = _make()
        viz.set_track(_track(0.2))
        viz.set_track(_track(0.8))
        assert len(scheduler) == 1
        scheduler.advance()
        assert viz.ticks == 1

    def test_teardown_twice(self) -> None:
        viz, _, scheduler = _make()
        viz.set_track(_track(0.4))
        scheduler.advance(2)
        viz.teardown()
        viz.teardown()
        assert viz.state is VisualizerState.STOPPED
        assert len(scheduler) == 0
        assert scheduler.advance(10) == 0
        assert viz.ticks == 2

    def test_teardown_before_start(self) -> None:
        viz, _, _ = _make()
        viz.teardown()
        assert viz.state is VisualizerState.STOPPED

    def test_set_track_restarts_after_teardown(self) -> None:
        viz, _, scheduler = _make()
        viz.set_track(_track(0.4))
        viz.teardown()
        viz.set_track(_track(0.6))
        assert viz.state is VisualizerState.RUNNING
        scheduler.advance()
        assert viz.ticks == 1


class TestCrossFade:
    def test_next_tick_lies_between_tracks(self) -> None:
        viz, _, scheduler = _make()
        a, b = FeatureState.from_track(_track(0.2)), FeatureState.from_track(_track(0.8))
        viz.set_track(_track(0.2))
        viz.set_track(_track(0.8))
        scheduler.advance()
        for f in fields(FeatureState):
            value = getattr(viz.current, f.name)
            assert getattr(a, f.name) < value < getattr(b, f.name)

    def test_converges_to_target(self) -> None:
        viz, _, scheduler = _make(surface=RecordingSurface(record=False))
        viz.set_track(_track(0.2))
        viz.set_track(_track(0.8, danceability=0.4))
        scheduler.advance(600)
        for f in fields(FeatureState):
            assert getattr(viz.current, f.name) == pytest.approx(getattr(viz.target, f.name), abs=1e-6)


class TestParticles:
    def test_count_follows_danceability(self) -> None:
        viz, _, _ = _make()
        viz.set_track(_track(danceability=0.5))
        assert len(viz.particles) == 170
        viz.set_track(_track(danceability=1.0))
        assert len(viz.particles) == 260
        viz.set_track(_track(danceability=0.0))
        assert len(viz.particles) == 80

    def test_regenerated_on_track_change(self) -> None:
        viz, _, _ = _make()
        viz.set_track(_track(0.5))
        first = viz.particles
        viz.set_track(_track(0.5))
        assert viz.particles is not first
        old = {id(p) for p in first}
        assert not any(id(p) in old for p in viz.particles)

    def test_shape_class_from_target_acousticness(self) -> None:
        viz, _, _ = _make(rng=ConstantRandom(0.25))
        viz.set_track(_track(acousticness=0.3))
        assert all(p.organic for p in viz.particles)
        viz.set_track(_track(acousticness=0.2))
        assert not any(p.organic for p in viz.particles)

    def test_attributes_from_random_source(self) -> None:
        viz, _, _ = _make(rng=ConstantRandom(0.5))
        viz.set_track(_track(loudness_norm=0.5))
        p = viz.particles[0]
        assert (p.x, p.y) == (200, 150)
        assert (p.vx, p.vy) == (0.0, 0.0)
        assert p.size == pytest.approx(1.5 + 0.5 * 3 * 1.0)
        assert p.life == 0.5
        assert p.phase == pytest.approx(math.pi)

    def test_wrap(self) -> None:
        assert _wrap(-EDGE_MARGIN - 1, 400) == 400 + EDGE_MARGIN
        assert _wrap(400 + EDGE_MARGIN + 1, 400) == -EDGE_MARGIN
        assert _wrap(120, 400) == 120

    def test_particles_stay_near_surface(self) -> None:
        viz, _, scheduler = _make(surface=RecordingSurface(record=False))
        viz.set_track(_track(1.0, danceability=0.2))
        scheduler.advance(200)
        for p in viz.particles:
            assert -EDGE_MARGIN - 10 <= p.x <= viz.width + EDGE_MARGIN + 10
            assert -EDGE_MARGIN - 10 <= p.y <= viz.height + EDGE_MARGIN + 10


class TestDrawing:
    def _draw_once(self, track: Track, rng=None) -> RecordingSurface:
        viz, surface, scheduler = _make(rng=rng)
        viz.set_track(track)
        scheduler.advance()
        return surface

    def test_trail_alpha_from_energy(self) -> None:
        surface = self._draw_once(_track(0.4, energy=0.4))
        kind, _, color = surface.calls[0]
        assert kind == "fill_rect"
        assert color.alpha == pytest.approx(0.08 + 0.6 * 0.15)

    def test_organic_particles_are_ellipses(self) -> None:
        surface = self._draw_once(_track(0.4, acousticness=1.0))
        assert surface.kinds().count("ellipse") == 152
        assert "polygon" not in surface.kinds()

    def test_instrumental_geometric_particles_are_diamonds(self) -> None:
        surface = self._draw_once(_track(0.4, acousticness=0.0, instrumentalness=0.5))
        assert surface.kinds().count("polygon") == 152
        assert all(len(c[1]) == 4 for c in surface.calls if c[0] == "polygon")

    def test_other_geometric_particles_are_rounded_rects(self) -> None:
        surface = self._draw_once(_track(0.4, acousticness=0.0, instrumentalness=0.3))
        assert surface.kinds().count("rounded_rect") == 152

    def test_glow_only_above_energy_threshold(self) -> None:
        assert "glow" not in self._draw_once(_track(0.4, energy=0.6)).kinds()
        assert self._draw_once(_track(0.4, energy=0.7)).kinds().count("glow") == 152

    def test_hue_follows_valence(self) -> None:
        assert mood_hue(0.0) == 240
        assert mood_hue(1.0) == 30
        surface = self._draw_once(_track(0.4, valence=0.0, acousticness=1.0), rng=ConstantRandom(0.5))
        colors = [c[2] for c in surface.calls if c[0] == "ellipse"]
        # life 0.5 puts the per-particle offset at zero
        assert all(c.hue == pytest.approx(240) for c in colors)

    def test_connections_over_strided_sample(self) -> None:
        # every particle starts at the same spot, so each sampled pair connects
        surface = self._draw_once(_track(0.4, danceability=0.9), rng=ConstantRandom(0.25))
        count = math.floor(80 + 0.9 * 180)
        sampled = len(range(0, count, 3))
        assert surface.kinds().count("line") == sampled * (sampled - 1) // 2

    def test_no_connections_at_half_danceability(self) -> None:
        surface = self._draw_once(_track(0.4, danceability=0.5), rng=ConstantRandom(0.25))
        assert "line" not in surface.kinds()

    def test_hostile_features_draw_safely(self) -> None:
        viz, surface, scheduler = _make()
        viz.set_track(SimpleNamespace(energy=float("nan"), danceability=5, acousticness=-1, valence="?"))
        scheduler.advance(3)
        for _, dims, color in surface.calls:
            assert all(math.isfinite(c) for c in color)
            if dims and isinstance(dims[0], (int, float)):
                assert all(d >= 0 for d in dims)


class TestResize:
    def test_requeries_size_and_scale(self) -> None:
        viz, surface, _ = _make(surface=RecordingSurface(ratio=2.0))
        assert surface.scales == [2.0]
        surface.width, surface.height = 800, 600
        viz.resize()
        assert (viz.width, viz.height) == (800, 600)
        assert surface.scales == [2.0, 2.0]

    @pytest.mark.parametrize("ratio", [0, float("nan"), None])
    def test_bad_ratio_falls_back_to_one(self, ratio) -> None:
        _, surface, _ = _make(surface=RecordingSurface(ratio=ratio))
        assert surface.scales == [1.0]

