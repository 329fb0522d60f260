"""Generative particle visualizer driven by a track's audio features.

Feature mapping:
  valence          -> dominant hue (blue/purple when low, warm orange when high)
  energy           -> particle speed, trail length, saturation, glow pass
  danceability     -> particle count, pulse size, connecting lines
  tempo            -> pulse frequency
  loudness         -> particle size and brightness
  acousticness     -> share of organic (wobbling ellipse) particles
  instrumentalness -> geometric particles draw as diamonds instead of squares
  liveness         -> positional jitter
"""

import enum
import math
import random
from dataclasses import dataclass, fields, replace
from typing import NamedTuple, Protocol

from loguru import logger

from sfaucet.frames import FrameScheduler

FRAME_SECONDS = 0.016
BLEND_RATE = 0.03
EDGE_MARGIN = 10.0
LINE_STRIDE = 3


class Hsla(NamedTuple):
    hue: float  # degrees
    saturation: float  # percent
    lightness: float  # percent
    alpha: float  # 0-1


# rgb(10, 10, 26)
BACKGROUND = Hsla(240, 44.4, 7.1, 1.0)


class Surface(Protocol):
    """What the visualizer draws on. Coordinates are in logical pixels."""

    device_pixel_ratio: float

    def get_size(self) -> tuple[float, float]: ...

    def set_scale(self, ratio: float) -> None: ...

    def fill_rect(self, x: float, y: float, w: float, h: float, color: Hsla) -> None: ...

    def ellipse(
        self, cx: float, cy: float, rx: float, ry: float, rotation: float, color: Hsla
    ) -> None: ...

    def polygon(self, points: list[tuple[float, float]], color: Hsla) -> None: ...

    def rounded_rect(
        self, x: float, y: float, w: float, h: float, radius: float, color: Hsla
    ) -> None: ...

    def glow(self, cx: float, cy: float, radius: float, blur: float, color: Hsla) -> None: ...

    def line(
        self, x1: float, y1: float, x2: float, y2: float, width: float, color: Hsla
    ) -> None: ...


class RandomSource(Protocol):
    def random(self) -> float: ...


class VisualizerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    STOPPED = "stopped"


def _sanitize(value: object) -> float:
    """Coerce a feature value into [0, 1]; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(num):
        return 0.0
    return max(0.0, min(1.0, num))


@dataclass
class FeatureState:
    valence: float = 0.0
    energy: float = 0.0
    danceability: float = 0.0
    tempo: float = 0.0
    loudness: float = 0.0
    acousticness: float = 0.0
    liveness: float = 0.0
    instrumentalness: float = 0.0

    @classmethod
    def from_track(cls, track: object) -> "FeatureState":
        return cls(
            valence=_sanitize(getattr(track, "valence", None)),
            energy=_sanitize(getattr(track, "energy", None)),
            danceability=_sanitize(getattr(track, "danceability", None)),
            tempo=_sanitize(getattr(track, "tempo_norm", None)),
            loudness=_sanitize(getattr(track, "loudness_norm", None)),
            acousticness=_sanitize(getattr(track, "acousticness", None)),
            liveness=_sanitize(getattr(track, "liveness", None)),
            instrumentalness=_sanitize(getattr(track, "instrumentalness", None)),
        )

    def blend_toward(self, target: "FeatureState", rate: float) -> None:
        """Move each value `rate` of the remaining gap toward `target`."""
        for f in fields(self):
            cur = getattr(self, f.name)
            setattr(self, f.name, cur + (getattr(target, f.name) - cur) * rate)


@dataclass
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    size: float
    life: float
    phase: float
    organic: bool


def mood_hue(valence: float) -> float:
    """0 -> 240 (blue), 0.5 -> 135, 1 -> 30 (warm orange)."""
    return 240 - valence * 210


def _wrap(value: float, limit: float) -> float:
    if value < -EDGE_MARGIN:
        return limit + EDGE_MARGIN
    if value > limit + EDGE_MARGIN:
        return -EDGE_MARGIN
    return value


def _diamond(cx: float, cy: float, size: float, angle: float) -> list[tuple[float, float]]:
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    corners = ((0.0, -size), (size, 0.0), (0.0, size), (-size, 0.0))
    return [(cx + x * cos_a - y * sin_a, cy + x * sin_a + y * cos_a) for x, y in corners]


class Visualizer:
    """Particle animation bound to one drawing surface.

    set_track() starts the loop on first use and afterwards only swaps the
    target features and the particle set; the current features keep
    blending toward the new target so track changes cross-fade.
    """

    def __init__(
        self,
        surface: Surface,
        scheduler: FrameScheduler,
        rng: RandomSource | None = None,
    ) -> None:
        self.surface = surface
        self.scheduler = scheduler
        self.rng = rng if rng is not None else random.Random()
        self.state = VisualizerState.UNINITIALIZED
        self.current: FeatureState | None = None
        self.target: FeatureState | None = None
        self.particles: list[Particle] = []
        self.time = 0.0
        self.ticks = 0
        self.width = 0.0
        self.height = 0.0
        self._frame: int | None = None
        self.resize()

    def resize(self) -> None:
        """Re-read the surface size and re-apply device pixel scaling."""
        ratio = self.surface.device_pixel_ratio
        if not ratio or not math.isfinite(ratio) or ratio <= 0:
            ratio = 1.0
        self.surface.set_scale(ratio)
        width, height = self.surface.get_size()
        self.width = max(0.0, float(width))
        self.height = max(0.0, float(height))

    def set_track(self, track: object) -> None:
        self.target = FeatureState.from_track(track)
        if self.current is None:
            self.current = replace(self.target)
        self._spawn_particles()

        if self.state is not VisualizerState.RUNNING:
            logger.debug(f"Visualizer {self.state.value} -> running")
        self.state = VisualizerState.RUNNING
        if self._frame is None:
            self._frame = self.scheduler.request_frame(self._on_frame)

    def teardown(self) -> None:
        """Cancel the pending frame. Safe to call more than once."""
        if self._frame is not None:
            self.scheduler.cancel_frame(self._frame)
            self._frame = None
        if self.state is not VisualizerState.STOPPED:
            logger.debug(f"Visualizer {self.state.value} -> stopped")
        self.state = VisualizerState.STOPPED

    def _spawn_particles(self) -> None:
        count = math.floor(80 + self.target.danceability * 180)
        self.particles = [self._new_particle(self.target) for _ in range(count)]

    def _new_particle(self, f: FeatureState) -> Particle:
        r = self.rng.random
        return Particle(
            x=r() * self.width,
            y=r() * self.height,
            vx=(r() - 0.5) * 2,
            vy=(r() - 0.5) * 2,
            size=1.5 + r() * 3 * (0.5 + f.loudness),
            life=r(),
            phase=r() * math.tau,
            organic=r() < f.acousticness,
        )

    def _on_frame(self) -> None:
        self._frame = self.scheduler.request_frame(self._on_frame)
        self.tick()

    def tick(self) -> None:
        """Advance one frame: time, feature blend, particle motion, drawing."""
        if self.current is None or self.target is None:
            return
        self.time += FRAME_SECONDS
        self.ticks += 1
        self.current.blend_toward(self.target, BLEND_RATE)
        self._draw()

    def _draw(self) -> None:
        f = self.current
        s = self.surface
        w, h = self.width, self.height

        trail = 0.08 + (1 - f.energy) * 0.15
        s.fill_rect(0, 0, w, h, BACKGROUND._replace(alpha=trail))

        base_hue = mood_hue(f.valence)
        speed = 0.3 + f.energy * 3
        pulse_freq = 0.5 + f.tempo * 4
        pulse = math.sin(self.time * pulse_freq) * 0.5 + 0.5
        jitter = f.liveness * 3
        saturation = 60 + f.energy * 30
        lightness = 45 + pulse * 15 + f.loudness * 15
        alpha = 0.3 + pulse * 0.4 * f.energy
        r = self.rng.random

        for p in self.particles:
            dx = math.cos(p.phase + self.time * pulse_freq * 0.3) * speed
            dy = math.sin(p.phase + self.time * pulse_freq * 0.2) * speed
            p.x = _wrap(p.x + p.vx * speed + dx * 0.3 + (r() - 0.5) * jitter, w)
            p.y = _wrap(p.y + p.vy * speed + dy * 0.3 + (r() - 0.5) * jitter, h)

            hue = (base_hue + p.life * 60 - 30 + 360) % 360
            color = Hsla(hue, saturation, lightness, alpha)
            size = p.size * (0.8 + pulse * 0.4 * f.danceability)

            if p.organic:
                wobble = math.sin(self.time * 2 + p.phase) * size * 0.2 * f.acousticness
                s.ellipse(p.x, p.y, size + wobble, size - wobble * 0.5, p.phase, color)
            elif f.instrumentalness > 0.3:
                s.polygon(_diamond(p.x, p.y, size, self.time * 0.5 + p.phase), color)
            else:
                s.rounded_rect(p.x - size, p.y - size, size * 2, size * 2, size * 0.3, color)

            if f.energy > 0.6:
                s.glow(p.x, p.y, size * 0.5, size * 4, color._replace(alpha=alpha * 0.3))

        if f.danceability > 0.5:
            self._draw_connections(base_hue, f.danceability)

    def _draw_connections(self, base_hue: float, danceability: float) -> None:
        color = Hsla(base_hue, 50, 60, 0.03 + danceability * 0.05)
        reach = 60 + danceability * 40
        sample = self.particles[::LINE_STRIDE]
        for i, a in enumerate(sample):
            for b in sample[i + 1:]:
                if math.hypot(a.x - b.x, a.y - b.y) < reach:
                    self.surface.line(a.x, a.y, b.x, b.y, 0.5, color)
