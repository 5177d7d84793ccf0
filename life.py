#!/usr/bin/env python3
"""
  L I F E  on a torus
  Conway's Game of Life in a window.

  A fixed square grid whose edges wrap around, seeded with random cells
  and advanced one generation per frame with the classic B3/S23 rule.
  Live cells are drawn as small yellow squares on black.

  Controls:
    q / ESC   quit
    (closing the window quits too)

  Options (all optional, defaults reproduce the classic 300x300 run):
    --size N      grid side in cells          --scale P   pixels per cell
    --fps F       frame pacing target         --cells K   random seed draws
    --seed S      fixed PRNG seed             --stats F   CSV telemetry file
"""

from __future__ import annotations

import argparse
import os
import time
from collections import deque
from pathlib import Path
from typing import IO, Callable, ClassVar, Iterable, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.ndimage import convolve

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame  # noqa: E402

# ── Defaults ────────────────────────────────────────────────────────────
SIZE: int = 300            # grid side, in cells
PIXEL_SCALE: int = 2       # pixels per cell side
FPS: int = 60              # nominal frames per second
SEED_CELLS: int = 10_000   # random (x, y) draws at startup

FOREGROUND: tuple[int, int, int] = (255, 255, 0)
BACKGROUND: tuple[int, int, int] = (0, 0, 0)
TITLE = "Life"

# ── Convolution kernel (reused every step) ────────────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

# ── Sparkline characters ────────────────────────────────────────────────
SPARKS = "▁▂▃▄▅▆▇█"

# ── Telemetry cadence ───────────────────────────────────────────────────
LOG_EVERY: int = 10        # generations between CSV rows
CAPTION_EVERY: int = 30    # generations between window title refreshes

QUIT_KEYS: frozenset[int] = frozenset({pygame.K_ESCAPE, pygame.K_q})


# ═══════════════════════════════════════════════════════════════════════
#  The grid
# ═══════════════════════════════════════════════════════════════════════

class Grid:
    """
    A square field of cells on a torus.

    Cells are stored row-major as ``cells[y, x]``. Every coordinate is
    reduced modulo the side length before use, so any integer (negative,
    or many multiples of the size away) names a real cell and the left and
    right, top and bottom edges are neighbours of each other.
    """

    def __init__(self, size: int = SIZE) -> None:
        if size < 3:
            raise ValueError(f"grid size must be at least 3, got {size}")
        self.size: int = size
        self.cells: NDArray[np.bool_] = np.zeros((size, size), dtype=np.bool_)

    @classmethod
    def from_array(cls, cells: ArrayLike) -> Grid:
        """Build a grid from a square 2-D array-like (truthy = alive)."""
        arr = np.array(cells, dtype=np.bool_)
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
            raise ValueError(f"expected a square 2-D array, got shape {arr.shape}")
        grid = cls(arr.shape[0])
        grid.cells[...] = arr
        return grid

    def copy(self) -> Grid:
        return Grid.from_array(self.cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self.cells, other.cells))

    def __repr__(self) -> str:
        return f"Grid(size={self.size}, population={self.population()})"

    # ── Cell access ─────────────────────────────────────────────────

    def get(self, x: int, y: int) -> bool:
        return bool(self.cells[y % self.size, x % self.size])

    def set(self, x: int, y: int, value: bool) -> None:
        self.cells[y % self.size, x % self.size] = value

    def neighbours(self, x: int, y: int) -> int:
        """Live cells among the eight surrounding (x, y), wrapping at edges."""
        count = 0
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if (dx or dy) and self.get(x + dx, y + dy):
                    count += 1
        return count

    def neighbour_counts(self) -> NDArray[np.int16]:
        """Neighbour count of every cell at once (toroidal convolution)."""
        return convolve(self.cells.astype(np.int16), NEIGHBOR_KERNEL, mode="wrap")

    def population(self) -> int:
        return int(np.count_nonzero(self.cells))

    # ── Drawing ─────────────────────────────────────────────────────

    def render(
        self,
        surface: pygame.Surface,
        scale: int = PIXEL_SCALE,
        color: tuple[int, int, int] = FOREGROUND,
    ) -> None:
        """Fill one ``scale``-sized square per live cell.

        Only live cells are drawn; the caller clears the frame first. A
        failed fill skips that cell and drawing carries on.
        """
        ys, xs = np.nonzero(self.cells)
        _fill = surface.fill
        for y, x in zip(ys.tolist(), xs.tolist()):
            try:
                _fill(color, (x * scale, y * scale, scale, scale))
            except pygame.error:
                pass


# ═══════════════════════════════════════════════════════════════════════
#  The rule
# ═══════════════════════════════════════════════════════════════════════

def generation(grid: Grid) -> Grid:
    """Return the next generation of ``grid`` (B3/S23) as a new Grid.

    Counts come only from ``grid``; results go only into a freshly
    allocated grid, so no cell ever sees a neighbour's updated state.
    """
    n = grid.neighbour_counts()
    alive = grid.cells
    n_is_3 = n == 3
    birth = ~alive & n_is_3
    survive = alive & (n_is_3 | (n == 2))

    nxt = Grid(grid.size)
    np.logical_or(birth, survive, out=nxt.cells)
    return nxt


# ═══════════════════════════════════════════════════════════════════════
#  The simulation
# ═══════════════════════════════════════════════════════════════════════

class Life:
    """Owns the live grid, the PRNG and the per-generation bookkeeping."""

    def __init__(self, size: int = SIZE, seed: int | None = None) -> None:
        self.size: int = size
        self.grid: Grid = Grid(size)
        # seed=None pulls fresh OS entropy
        self.rng: np.random.Generator = np.random.default_rng(seed)
        self.generation: int = 0
        self.pop_history: deque[int] = deque(maxlen=500)

    def seed_random(self, count: int = SEED_CELLS) -> None:
        """Switch on ``count`` uniformly drawn cells (repeats just overlap)."""
        if count < 0:
            raise ValueError(f"cell count must be non-negative, got {count}")
        for _ in range(count):
            x = int(self.rng.integers(0, self.size))
            y = int(self.rng.integers(0, self.size))
            self.grid.set(x, y, True)

    def step(self) -> int:
        """Advance one generation. Returns the new population."""
        self.grid = generation(self.grid)
        self.generation += 1
        pop = self.grid.population()
        self.pop_history.append(pop)
        return pop

    def population(self) -> int:
        return self.grid.population()

    def sparkline(self, width: int = 24) -> str:
        ph_len = len(self.pop_history)
        if ph_len < 2:
            return ""
        start = max(0, ph_len - width)
        window = [self.pop_history[i] for i in range(start, ph_len)]
        lo, hi = min(window), max(window)
        if hi == lo:
            return SPARKS[len(SPARKS) // 2] * len(window)
        n_sparks = len(SPARKS) - 1
        return "".join(SPARKS[int((v - lo) / (hi - lo) * n_sparks)] for v in window)

    def status(self) -> str:
        spark = self.sparkline()
        return f"{TITLE}  gen {self.generation:,}  pop {self.population():,}  {spark}".rstrip()


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes per-generation telemetry to CSV."""

    HEADER: ClassVar[str] = "gen,time_s,population,frame_ms,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    @property
    def enabled(self) -> bool:
        return self._fh is not None

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, gen: int, pop: int, frame_ms: float, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        try:
            self._fh.write(f"{gen},{t:.1f},{pop},{frame_ms:.2f},{event}\n")
            # Flush on events or periodically
            if event or gen % 50 == 0:
                self._fh.flush()
        except OSError:
            self.close()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def is_quit_event(event: pygame.event.Event) -> bool:
    if event.type == pygame.QUIT:
        return True
    return event.type == pygame.KEYDOWN and event.key in QUIT_KEYS


def _refresh_caption(life: Life) -> None:
    # Off-screen runs (bench, tests) have no window to title
    if pygame.display.get_init() and pygame.display.get_surface() is not None:
        pygame.display.set_caption(life.status())


def run(
    life: Life,
    screen: pygame.Surface,
    poll: Callable[[], Iterable[pygame.event.Event]] = pygame.event.get,
    present: Callable[[], object] = pygame.display.flip,
    frame_delay: float = 1.0 / FPS,
    scale: int = PIXEL_SCALE,
    max_frames: int | None = None,
    logger: StatsLogger | None = None,
) -> int:
    """
    Clear, drain input, step, draw, present, sleep, until told to quit.

    Returns the number of frames completed. A quit trigger ends the loop
    at once, before that frame's step. ``max_frames`` bounds the run for
    headless use. The sleep is a fixed ``frame_delay`` with no correction
    for the time the frame itself took.
    """
    frames = 0
    frame_ms = 0.0
    end_event = "end"

    while max_frames is None or frames < max_frames:
        t0 = time.perf_counter()
        screen.fill(BACKGROUND)

        if any(is_quit_event(e) for e in poll()):
            end_event = "quit"
            break

        life.step()
        life.grid.render(screen, scale)
        present()
        frames += 1
        frame_ms = (time.perf_counter() - t0) * 1000.0

        if logger is not None and life.generation % LOG_EVERY == 0:
            logger.log(life.generation, life.population(), frame_ms)
        if life.generation % CAPTION_EVERY == 0:
            _refresh_caption(life)

        time.sleep(frame_delay)

    if logger is not None:
        logger.log(life.generation, life.population(), frame_ms, event=end_event)
    return frames


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return value


def _non_negative_int(text: str) -> int:
    value = int(text)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {text}")
    return value


def _grid_size(text: str) -> int:
    value = int(text)
    if value < 3:
        raise argparse.ArgumentTypeError(f"grid size must be at least 3, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Conway's Game of Life on a torus")
    parser.add_argument("--size", type=_grid_size, default=SIZE,
                        help=f"Grid side in cells (default: {SIZE})")
    parser.add_argument("--scale", type=_positive_int, default=PIXEL_SCALE,
                        help=f"Pixels per cell (default: {PIXEL_SCALE})")
    parser.add_argument("--fps", type=_positive_int, default=FPS,
                        help=f"Target frames per second (default: {FPS})")
    parser.add_argument("--cells", type=_non_negative_int, default=SEED_CELLS,
                        help=f"Random cells switched on at start (default: {SEED_CELLS})")
    parser.add_argument("--seed", type=int, default=None,
                        help="PRNG seed (default: fresh OS entropy)")
    parser.add_argument("--stats", type=Path, default=None,
                        help="Write CSV telemetry to this file")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    life = Life(args.size, seed=args.seed)
    life.seed_random(args.cells)

    logger: StatsLogger | None = None

    # Any pygame.error from here to the first frame is fatal
    pygame.init()
    try:
        if args.stats is not None:
            logger = StatsLogger(args.stats)
            logger.open()

        width = args.size * args.scale
        screen = pygame.display.set_mode((width, width))
        pygame.display.set_caption(TITLE)
        screen.fill(BACKGROUND)
        pygame.display.flip()

        run(life, screen, frame_delay=1.0 / args.fps, scale=args.scale, logger=logger)
    finally:
        if logger is not None:
            logger.close()
        pygame.quit()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
