"""Proportional auto-steer toward the vision target."""

from __future__ import annotations

import math

from .config import VISION_KP, VISION_MAX_COMMAND, VISION_MIN_COMMAND
from .kinematics import WheelCommands


def steering_adjust(
    offset_deg: float,
    kp: float = VISION_KP,
    min_command: float = VISION_MIN_COMMAND,
    max_command: float = VISION_MAX_COMMAND,
) -> float:
    # Exactly zero also means "no target"; do not snap it up to min_command.
    # A non-finite offset is treated the same way.
    if offset_deg == 0.0 or not math.isfinite(offset_deg):
        return 0.0
    steer = kp * offset_deg
    if abs(steer) < min_command:
        steer = math.copysign(min_command, steer)
    if abs(steer) > max_command:
        steer = math.copysign(max_command, steer)
    return steer


def steering_wheels(steer: float) -> WheelCommands:
    return WheelCommands.sides(left=-steer, right=steer)


__all__ = ["steering_adjust", "steering_wheels"]
