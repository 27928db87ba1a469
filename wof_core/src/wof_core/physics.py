"""Wheel spin physics.

Pure functions over ``WheelPhysicsState``: the host calls ``update_physics``
once per frame with the elapsed time and gets a new state back. Friction is
expressed per 60fps frame and rescaled by the real frame time, so the same
spin plays out identically at any frame rate.
"""
import math
import random
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .constants import FRAME_RATE, WHEEL_MIN_ROTATIONS
from .models import WheelPhysicsState

TWO_PI = math.pi * 2


class PhysicsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    friction: float = 0.985
    final_friction: float = 0.99
    final_phase_threshold: float = 4.0
    low_speed_friction: float = 0.97
    low_speed_threshold: float = 2.0
    min_velocity: float = 0.001
    min_spin_velocity: float = 15.0
    max_spin_velocity: float = 30.0
    min_rotations: int = WHEEL_MIN_ROTATIONS


DEFAULT_CONFIG = PhysicsConfig()


class FrictionTier(str, Enum):
    NORMAL = "NORMAL"
    FINAL = "FINAL"
    LOW_SPEED = "LOW_SPEED"


def select_friction(
    velocity: float, rotations_completed: float, config: PhysicsConfig = DEFAULT_CONFIG
) -> Tuple[FrictionTier, float]:
    """Pick the friction tier for the current speed.

    The slower tiers only engage once the minimum number of rotations is done;
    LOW_SPEED takes precedence over FINAL.
    """
    if rotations_completed >= config.min_rotations:
        if velocity < config.low_speed_threshold:
            return FrictionTier.LOW_SPEED, config.low_speed_friction
        if velocity < config.final_phase_threshold:
            return FrictionTier.FINAL, config.final_friction
    return FrictionTier.NORMAL, config.friction


def create_physics_state() -> WheelPhysicsState:
    return WheelPhysicsState()


def generate_spin_velocity(
    rng: Optional[random.Random] = None, config: PhysicsConfig = DEFAULT_CONFIG
) -> float:
    rng = rng or random
    return rng.uniform(config.min_spin_velocity, config.max_spin_velocity)


def start_spin(state: WheelPhysicsState, initial_velocity: float) -> WheelPhysicsState:
    if initial_velocity < 0:
        raise ValueError(f"initial velocity must be >= 0, got {initial_velocity}")
    return state.model_copy(update={
        "angular_velocity": float(initial_velocity),
        "is_spinning": True,
        "rotations_completed": 0.0,
        "spin_start_rotation": state.rotation,
    })


def update_physics(
    state: WheelPhysicsState, delta_seconds: float, config: PhysicsConfig = DEFAULT_CONFIG
) -> WheelPhysicsState:
    """Advance the wheel by one frame. No-op when the wheel is not spinning."""
    if not state.is_spinning or delta_seconds <= 0:
        return state

    rotations = abs(state.rotation - state.spin_start_rotation) / TWO_PI
    # Never let a rounding wobble step the counter backwards within a spin
    rotations = max(rotations, state.rotations_completed)

    _, friction = select_friction(state.angular_velocity, rotations, config)
    velocity = state.angular_velocity * math.pow(friction, delta_seconds * FRAME_RATE)
    rotation = state.rotation + state.angular_velocity * delta_seconds

    if velocity < config.min_velocity and rotations >= config.min_rotations:
        return state.model_copy(update={
            "angular_velocity": 0.0,
            "is_spinning": False,
            "rotation": rotation,
            "rotations_completed": rotations,
        })

    return state.model_copy(update={
        "angular_velocity": velocity,
        "rotation": rotation,
        "rotations_completed": rotations,
    })


def force_stop(state: WheelPhysicsState) -> WheelPhysicsState:
    return state.model_copy(update={"angular_velocity": 0.0, "is_spinning": False})


def calculate_landing_segment(rotation: float, segment_count: int) -> int:
    """Index of the segment under the fixed pointer at 12 o'clock.

    Samples at segment centres (half-segment offset) and walks the segment
    list backwards, since the wheel turns clockwise under the pointer.
    """
    if segment_count <= 0:
        raise ValueError(f"segment_count must be positive, got {segment_count}")

    normalized = ((rotation % TWO_PI) + TWO_PI) % TWO_PI
    segment_angle = TWO_PI / segment_count
    raw_index = math.floor((normalized + segment_angle / 2) / segment_angle) % segment_count
    return (segment_count - raw_index) % segment_count


class TickTracker(BaseModel):
    """Remembers the last segment under the pointer so each boundary crossing ticks once."""

    model_config = ConfigDict(frozen=True)

    last_segment_index: int = 0
    tick_count: int = 0


def is_tick(last_segment_index: int, current_segment_index: int) -> bool:
    return current_segment_index != last_segment_index


def check_tick(tracker: TickTracker, current_segment_index: int) -> Tuple[TickTracker, bool]:
    if not is_tick(tracker.last_segment_index, current_segment_index):
        return tracker, False
    return TickTracker(last_segment_index=current_segment_index, tick_count=tracker.tick_count + 1), True
