"""pygame window hosting the visualizer: drawing surface, frame clock and input."""

import colorsys
import math

import pygame
from loguru import logger

from sfaucet.frames import PendingFrames
from sfaucet.models import Track
from sfaucet.visualizer import Hsla, Visualizer

DEFAULT_SIZE = (960, 540)
DEFAULT_FPS = 60
GLOW_STEPS = 4


def to_rgba(color: Hsla) -> tuple[int, int, int, int]:
    r, g, b = colorsys.hls_to_rgb(
        (color.hue % 360) / 360,
        max(0.0, min(1.0, color.lightness / 100)),
        max(0.0, min(1.0, color.saturation / 100)),
    )
    a = max(0.0, min(1.0, color.alpha))
    return (int(r * 255), int(g * 255), int(b * 255), int(a * 255))


class PygameSurface:
    """Visualizer surface over a pygame display surface.

    pygame.draw does not blend alpha onto the screen, so every primitive is
    drawn onto its own SRCALPHA layer and blitted.
    """

    def __init__(self, screen: pygame.Surface, device_pixel_ratio: float = 1.0) -> None:
        self.screen = screen
        self.device_pixel_ratio = device_pixel_ratio
        self._scale = 1.0

    def get_size(self) -> tuple[float, float]:
        w, h = self.screen.get_size()
        return w / self._scale, h / self._scale

    def set_scale(self, ratio: float) -> None:
        # absolute, not cumulative: resizes must not compound the scale
        self._scale = ratio

    def _blit_layer(self, x: float, y: float, w: float, h: float, draw) -> None:
        s = self._scale
        left, top = math.floor(x * s), math.floor(y * s)
        width, height = max(1, math.ceil(w * s) + 1), max(1, math.ceil(h * s) + 1)
        layer = pygame.Surface((width, height), pygame.SRCALPHA)
        draw(layer, lambda px, py: (px * s - left, py * s - top))
        self.screen.blit(layer, (left, top))

    def fill_rect(self, x: float, y: float, w: float, h: float, color: Hsla) -> None:
        s = self._scale
        layer = pygame.Surface((max(1, math.ceil(w * s)), max(1, math.ceil(h * s))), pygame.SRCALPHA)
        layer.fill(to_rgba(color))
        self.screen.blit(layer, (math.floor(x * s), math.floor(y * s)))

    def ellipse(
        self, cx: float, cy: float, rx: float, ry: float, rotation: float, color: Hsla
    ) -> None:
        s = self._scale
        w, h = max(1, round(rx * 2 * s)), max(1, round(ry * 2 * s))
        layer = pygame.Surface((w, h), pygame.SRCALPHA)
        pygame.draw.ellipse(layer, to_rgba(color), layer.get_rect())
        rotated = pygame.transform.rotate(layer, -math.degrees(rotation))
        self.screen.blit(rotated, rotated.get_rect(center=(round(cx * s), round(cy * s))))

    def polygon(self, points: list[tuple[float, float]], color: Hsla) -> None:
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        x, y = min(xs), min(ys)

        def draw(layer, to_local):
            pygame.draw.polygon(layer, to_rgba(color), [to_local(px, py) for px, py in points])

        self._blit_layer(x, y, max(xs) - x, max(ys) - y, draw)

    def rounded_rect(
        self, x: float, y: float, w: float, h: float, radius: float, color: Hsla
    ) -> None:
        s = self._scale

        def draw(layer, to_local):
            left, top = to_local(x, y)
            rect = pygame.Rect(round(left), round(top), max(1, round(w * s)), max(1, round(h * s)))
            pygame.draw.rect(layer, to_rgba(color), rect, border_radius=max(0, round(radius * s)))

        self._blit_layer(x, y, w, h, draw)

    def glow(self, cx: float, cy: float, radius: float, blur: float, color: Hsla) -> None:
        outer = radius + blur

        def draw(layer, to_local):
            center = to_local(cx, cy)
            # widest ring first so the core stacks brightest
            for step in range(GLOW_STEPS, 0, -1):
                r = radius + blur * step / GLOW_STEPS
                ring = color._replace(alpha=color.alpha / step)
                pygame.draw.circle(layer, to_rgba(ring), center, max(1, round(r * self._scale)))

        self._blit_layer(cx - outer, cy - outer, outer * 2, outer * 2, draw)

    def line(
        self, x1: float, y1: float, x2: float, y2: float, width: float, color: Hsla
    ) -> None:
        x, y = min(x1, x2), min(y1, y2)

        def draw(layer, to_local):
            pygame.draw.line(
                layer, to_rgba(color), to_local(x1, y1), to_local(x2, y2),
                max(1, round(width * self._scale)),
            )

        self._blit_layer(x, y, abs(x2 - x1), abs(y2 - y1), draw)


class PygameFrameScheduler(PendingFrames):
    """Runs pending frame callbacks once per display refresh."""

    def __init__(self, fps: int = DEFAULT_FPS) -> None:
        super().__init__()
        self.fps = fps
        self.clock = pygame.time.Clock()

    def run(self, on_event) -> None:
        """Pump events and frames until nothing is scheduled any more."""
        while self:
            for event in pygame.event.get():
                on_event(event)
            self.run_pending()
            pygame.display.flip()
            self.clock.tick(self.fps)


def _caption(track: Track, index: int, total: int) -> str:
    return f"sfaucet [{index + 1}/{total}] {track.artists} - {track.name}"


def run_window(
    tracks: list[Track],
    size: tuple[int, int] = DEFAULT_SIZE,
    fps: int = DEFAULT_FPS,
) -> None:
    """Open a window animating `tracks[0]`; left/right arrows switch tracks."""
    if not tracks:
        raise ValueError("No tracks to visualize")

    pygame.init()
    try:
        screen = pygame.display.set_mode(size, pygame.RESIZABLE)
        surface = PygameSurface(screen)
        scheduler = PygameFrameScheduler(fps)
        viz = Visualizer(surface, scheduler)
        index = 0

        def show(i: int) -> None:
            nonlocal index
            index = i % len(tracks)
            track = tracks[index]
            pygame.display.set_caption(_caption(track, index, len(tracks)))
            logger.info(f"Visualizing {track.artists} - {track.name}")
            viz.set_track(track)

        def on_event(event: pygame.event.Event) -> None:
            if event.type == pygame.QUIT:
                viz.teardown()
            elif event.type == pygame.VIDEORESIZE:
                surface.screen = pygame.display.get_surface()
                viz.resize()
            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_ESCAPE, pygame.K_q):
                    viz.teardown()
                elif event.key == pygame.K_RIGHT:
                    show(index + 1)
                elif event.key == pygame.K_LEFT:
                    show(index - 1)

        show(0)
        scheduler.run(on_event)
    finally:
        pygame.quit()
