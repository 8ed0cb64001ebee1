"""Device identifiers, input mappings and tuning constants for the teleop loop."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

# --- Motor / pneumatics identifiers -------------------------------------------

MOTOR_CAN_IDS: Dict[str, int] = {
    "front_left": 1,
    "front_right": 2,
    "rear_left": 3,
    "rear_right": 4,
    "lift": 5,
    "extension": 6,
    "wrist_rotate": 7,
    "wrist_pivot": 8,
}

# Right-side wheels are mounted mirrored.
INVERTED_MOTORS = frozenset({"front_right", "rear_right"})

LEFT_DRIVE_MOTORS = ("front_left", "rear_left")
RIGHT_DRIVE_MOTORS = ("front_right", "rear_right")
DRIVE_MOTORS = LEFT_DRIVE_MOTORS + RIGHT_DRIVE_MOTORS
ARM_MOTORS = ("lift", "extension", "wrist_rotate", "wrist_pivot")

PCM_ID = 0

SOLENOID_CHANNELS: Dict[str, int] = {
    "drive_mode_a": 0,
    "drive_mode_b": 1,
    "gripper": 2,
}

DRIVER_PORT = 0
OPERATOR_PORT = 1

DEFAULT_CAN_CHANNEL = "can0"
DEFAULT_PERIOD_S = 0.02

# --- Tuning ------------------------------------------------------------------

THROTTLE_CAP = 0.6
GRIPPER_CAP = 0.25

VISION_KP = 0.1
VISION_MIN_COMMAND = 0.001
VISION_MAX_COMMAND = 0.045


@dataclass(frozen=True)
class TuningConfig:
    throttle_cap: float = THROTTLE_CAP
    gripper_cap: float = GRIPPER_CAP
    vision_kp: float = VISION_KP
    vision_min_command: float = VISION_MIN_COMMAND
    vision_max_command: float = VISION_MAX_COMMAND

    def __post_init__(self) -> None:
        for name in ("throttle_cap", "gripper_cap"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.vision_min_command > self.vision_max_command:
            raise ValueError("vision_min_command must not exceed vision_max_command")


@dataclass(frozen=True)
class DeviceConfig:
    can_channel: str = DEFAULT_CAN_CHANNEL
    motor_ids: Mapping[str, int] = field(default_factory=lambda: dict(MOTOR_CAN_IDS))
    inverted_motors: frozenset = INVERTED_MOTORS
    pcm_id: int = PCM_ID
    solenoid_channels: Mapping[str, int] = field(
        default_factory=lambda: dict(SOLENOID_CHANNELS)
    )
    driver_port: int = DRIVER_PORT
    operator_port: int = OPERATOR_PORT


@dataclass(frozen=True)
class InputMapping:
    """Axis and button indices as pygame (SDL) enumerates an Xbox pad on Linux.

    Axes 2 and 5 are the analog triggers and rest at -1.0, so nothing maps to them.
    """

    drive_x_axis: int = 0
    drive_y_axis: int = 1
    turn_axis: int = 3  # right stick X
    toggle_button: int = 9  # left stick press
    target_button: int = 10  # right stick press

    extend_axis: int = 0
    lift_axis: int = 1
    wrist_rotate_axis: int = 3  # right stick X
    wrist_pivot_axis: int = 4  # right stick Y
    grabber_button: int = 1  # B


@dataclass(frozen=True)
class TeleopConfig:
    tuning: TuningConfig = field(default_factory=TuningConfig)
    devices: DeviceConfig = field(default_factory=DeviceConfig)
    inputs: InputMapping = field(default_factory=InputMapping)
    period_s: float = DEFAULT_PERIOD_S

    def __post_init__(self) -> None:
        if self.period_s <= 0:
            raise ValueError(f"period_s must be positive, got {self.period_s}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TeleopConfig":
        env = os.environ if environ is None else environ
        base = cls()
        tuning = replace(
            base.tuning,
            throttle_cap=_env_float(env, "TELEOP_THROTTLE_CAP", base.tuning.throttle_cap),
            gripper_cap=_env_float(env, "TELEOP_GRIPPER_CAP", base.tuning.gripper_cap),
        )
        devices = replace(
            base.devices,
            can_channel=env.get("TELEOP_CAN_CHANNEL", "").strip() or base.devices.can_channel,
            driver_port=_env_int(env, "TELEOP_DRIVER_PORT", base.devices.driver_port),
            operator_port=_env_int(env, "TELEOP_OPERATOR_PORT", base.devices.operator_port),
        )
        period = _env_float(env, "TELEOP_PERIOD_S", base.period_s)
        return cls(tuning=tuning, devices=devices, inputs=base.inputs, period_s=period)


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


__all__ = [
    "MOTOR_CAN_IDS",
    "INVERTED_MOTORS",
    "LEFT_DRIVE_MOTORS",
    "RIGHT_DRIVE_MOTORS",
    "DRIVE_MOTORS",
    "ARM_MOTORS",
    "PCM_ID",
    "SOLENOID_CHANNELS",
    "DRIVER_PORT",
    "OPERATOR_PORT",
    "DEFAULT_CAN_CHANNEL",
    "DEFAULT_PERIOD_S",
    "THROTTLE_CAP",
    "GRIPPER_CAP",
    "VISION_KP",
    "VISION_MIN_COMMAND",
    "VISION_MAX_COMMAND",
    "TuningConfig",
    "DeviceConfig",
    "InputMapping",
    "TeleopConfig",
]
