"""Wheel mixing for the arcade and mecanum drive modes.

Wheel commands are returned in robot frame, before any per-motor inversion.
Neither mixer clips its output; arcade values may exceed 1.0 and are left to
the motor controller, mecanum values are normalised by construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class WheelCommands:
    front_left: float
    rear_left: float
    front_right: float
    rear_right: float

    @classmethod
    def sides(cls, left: float, right: float) -> "WheelCommands":
        return cls(front_left=left, rear_left=left, front_right=right, rear_right=right)

    def as_dict(self) -> Dict[str, float]:
        return {
            "front_left": self.front_left,
            "rear_left": self.rear_left,
            "front_right": self.front_right,
            "rear_right": self.rear_right,
        }


def arcade_mix(left_x: float, left_y: float) -> WheelCommands:
    return WheelCommands.sides(left=left_y - left_x, right=left_y + left_x)


def mecanum_mix(left_x: float, left_y: float, right_x: float) -> WheelCommands:
    forward = left_y
    strafe = -left_x
    rotation = -right_x
    denominator = max(abs(forward) + abs(strafe) + abs(rotation), 1.0)
    return WheelCommands(
        front_left=(forward + strafe + rotation) / denominator,
        rear_left=(forward - strafe + rotation) / denominator,
        front_right=(forward - strafe - rotation) / denominator,
        rear_right=(forward + strafe - rotation) / denominator,
    )


__all__ = ["WheelCommands", "arcade_mix", "mecanum_mix"]
