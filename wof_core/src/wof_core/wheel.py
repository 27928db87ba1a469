import csv
import logging
import math
import random
import time
from functools import lru_cache
from importlib import resources as _resources
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .constants import FRAME_RATE, MAX_SPIN_SECONDS
from .models import Wedge, WedgeResult, WedgeType, WheelPhysicsState
from .physics import (
    DEFAULT_CONFIG,
    PhysicsConfig,
    TickTracker,
    calculate_landing_segment,
    check_tick,
    create_physics_state,
    force_stop,
    generate_spin_velocity,
    start_spin,
    update_physics,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def load_wheel() -> Tuple[Wedge, ...]:
    """Return the wedges from packaged assets/wheel.csv, clockwise from the pointer.

    Rows are ``id,type,value,label`` with no header row.
    """
    text = _resources.files("wof_core.assets").joinpath("wheel.csv").read_text(encoding="utf-8")
    wedges: List[Wedge] = []
    for row in csv.reader(text.splitlines()):
        if not row or len(row) < 3:
            continue
        wedge_id, wedge_type, value = row[0].strip(), row[1].strip(), row[2].strip()
        label = row[3].strip() if len(row) > 3 else value
        try:
            wedges.append(Wedge(id=wedge_id, type=WedgeType(wedge_type), value=int(value), label=label))
        except ValueError as e:
            raise ValueError(f"Bad wheel.csv row {row!r}: {e}") from e
    if not wedges:
        raise ValueError("No wedges loaded from wheel.csv")
    return tuple(wedges)


WHEEL_SEGMENT_COUNT = len(load_wheel())
SEGMENT_ANGLE = (math.pi * 2) / WHEEL_SEGMENT_COUNT


def wedge_at(index: int, wedges: Optional[Sequence[Wedge]] = None) -> Wedge:
    wedges = wedges or load_wheel()
    return wedges[index % len(wedges)]


def wedge_result(wedge: Wedge) -> WedgeResult:
    return WedgeResult(type=wedge.type, value=wedge.value, wedge_id=wedge.id)


class SpinFrame(BaseModel):
    """What one ``SpinDriver.update`` call observed."""

    model_config = ConfigDict(frozen=True)

    state: WheelPhysicsState
    segment_index: int
    ticked: bool = False
    stopped: bool = False
    timed_out: bool = False


class SpinOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    segment_index: int
    wedge: Wedge
    initial_velocity: float
    start_rotation: float
    rotation: float
    rotations_completed: float
    frames: int
    ticks: int
    timed_out: bool


class SpinDriver:
    """Owns one wheel's physics state and drives it frame by frame.

    The host feeds real frame times into ``update``; the driver tracks segment
    ticks and enforces a wall-clock budget. A spin that outlives the budget is
    stopped where it is, which looks the same to callers as a natural stop.
    """

    def __init__(
        self,
        wedges: Optional[Sequence[Wedge]] = None,
        config: PhysicsConfig = DEFAULT_CONFIG,
        rng: Optional[random.Random] = None,
        max_spin_seconds: float = MAX_SPIN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.wedges: Tuple[Wedge, ...] = tuple(wedges) if wedges else load_wheel()
        self.config = config
        self.rng = rng or random.Random()
        self.max_spin_seconds = max_spin_seconds
        self.clock = clock
        self.state = create_physics_state()
        self.tracker = TickTracker()
        self._started_at = 0.0

    @property
    def segment_count(self) -> int:
        return len(self.wedges)

    @property
    def is_spinning(self) -> bool:
        return self.state.is_spinning

    def current_segment(self) -> int:
        return calculate_landing_segment(self.state.rotation, self.segment_count)

    def spin(self, velocity: Optional[float] = None) -> Optional[float]:
        """Start a spin; returns the initial velocity, or None if already spinning."""
        if self.state.is_spinning:
            return None
        if velocity is None:
            velocity = generate_spin_velocity(self.rng, self.config)
        self.state = start_spin(self.state, velocity)
        self.tracker = TickTracker(last_segment_index=self.current_segment())
        self._started_at = self.clock()
        logger.debug("Spin started with velocity: %.2f", velocity)
        return velocity

    def update(self, delta_seconds: float) -> SpinFrame:
        if not self.state.is_spinning:
            return SpinFrame(state=self.state, segment_index=self.current_segment())

        self.state = update_physics(self.state, delta_seconds, self.config)
        segment = self.current_segment()
        self.tracker, ticked = check_tick(self.tracker, segment)

        timed_out = False
        if self.state.is_spinning and self.clock() - self._started_at > self.max_spin_seconds:
            logger.warning(
                "Spin timed out after %.1fs (%.2f rotations), forcing stop",
                self.max_spin_seconds, self.state.rotations_completed,
            )
            self.state = force_stop(self.state)
            timed_out = True

        return SpinFrame(
            state=self.state,
            segment_index=segment,
            ticked=ticked,
            stopped=not self.state.is_spinning,
            timed_out=timed_out,
        )

    def landing(self) -> Tuple[int, Wedge]:
        index = self.current_segment()
        return index, self.wedges[index]

    def run(self, velocity: Optional[float] = None, frame_seconds: float = 1.0 / FRAME_RATE) -> SpinOutcome:
        """Spin from the current position to a stop at a fixed frame step.

        Elapsed time is simulated, so the timeout budget is measured in frames
        rather than wall-clock seconds. The wheel keeps its final position for
        the next spin.
        """
        if self.state.is_spinning:
            raise RuntimeError("wheel is already spinning")

        wall_clock = self.clock
        elapsed = [0.0]
        self.clock = lambda: elapsed[0]
        try:
            start_rotation = self.state.rotation
            initial = self.spin(velocity)
            frames = 0
            timed_out = False
            while self.state.is_spinning:
                elapsed[0] += frame_seconds
                frame = self.update(frame_seconds)
                frames += 1
                timed_out = frame.timed_out
        finally:
            self.clock = wall_clock

        index, wedge = self.landing()
        logger.debug("Landed on segment %s: %s (%s)", index, wedge.label, wedge.type.value)
        return SpinOutcome(
            segment_index=index,
            wedge=wedge,
            initial_velocity=initial,
            start_rotation=start_rotation,
            rotation=self.state.rotation,
            rotations_completed=self.state.rotations_completed,
            frames=frames,
            ticks=self.tracker.tick_count,
            timed_out=timed_out,
        )


def simulate_spin(
    velocity: Optional[float] = None,
    rng: Optional[random.Random] = None,
    wedges: Optional[Sequence[Wedge]] = None,
    config: PhysicsConfig = DEFAULT_CONFIG,
    frame_seconds: float = 1.0 / FRAME_RATE,
    max_spin_seconds: float = MAX_SPIN_SECONDS,
) -> SpinOutcome:
    """One headless spin of a fresh wheel resting at rotation 0."""
    driver = SpinDriver(wedges, config, rng, max_spin_seconds)
    return driver.run(velocity, frame_seconds)


def spin_wheel(rng: Optional[random.Random] = None) -> Wedge:
    """Spin the packaged wheel to completion and return the wedge under the pointer."""
    return simulate_spin(rng=rng).wedge
