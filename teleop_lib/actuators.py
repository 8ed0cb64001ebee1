"""Actuator sinks and the bank that maps logical outputs onto them."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional, Protocol

from .can_bus import send_motor_command, send_solenoid_command
from .config import ARM_MOTORS, DRIVE_MOTORS, DeviceConfig
from .kinematics import WheelCommands

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


class ActuatorSink(Protocol):
    def set_motor(self, name: str, value: float) -> None:
        ...

    def set_solenoid(self, name: str, on: bool) -> None:
        ...


class LoggingActuatorSink:
    """Dry-run sink: remembers the last command per actuator and logs changes."""

    def __init__(self, status_callback: Optional[StatusCallback] = None) -> None:
        self.motors: Dict[str, float] = {}
        self.solenoids: Dict[str, bool] = {}
        self._status_callback = status_callback

    def _log(self, message: str) -> None:
        if self._status_callback:
            self._status_callback(message)
        else:
            logger.debug(message)

    def set_motor(self, name: str, value: float) -> None:
        if self.motors.get(name) != value:
            self._log(f"[DryRun] {name} <- {value:+.3f}")
        self.motors[name] = value

    def set_solenoid(self, name: str, on: bool) -> None:
        self._log(f"[DryRun] solenoid {name} <- {'on' if on else 'off'}")
        self.solenoids[name] = on


class CanActuatorSink:
    """Sends every command straight onto the configured CAN channel."""

    def __init__(self, devices: DeviceConfig) -> None:
        self.devices = devices

    def set_motor(self, name: str, value: float) -> None:
        device_id = self.devices.motor_ids[name]
        send_motor_command(self.devices.can_channel, device_id, value)

    def set_solenoid(self, name: str, on: bool) -> None:
        channel = self.devices.solenoid_channels[name]
        send_solenoid_command(self.devices.can_channel, self.devices.pcm_id, channel, on)


class ActuatorBank:
    """Front for a sink that validates names and applies motor inversion."""

    def __init__(
        self,
        sink: ActuatorSink,
        motors: Iterable[str] = DRIVE_MOTORS + ARM_MOTORS,
        solenoids: Iterable[str] = ("drive_mode_a", "drive_mode_b", "gripper"),
        inverted: Iterable[str] = (),
    ) -> None:
        self.sink = sink
        self.motors = tuple(motors)
        self.solenoids = tuple(solenoids)
        self.inverted = frozenset(inverted)
        unknown = self.inverted.difference(self.motors)
        if unknown:
            raise ValueError(f"Inverted motors not in bank: {sorted(unknown)}")

    @classmethod
    def from_devices(cls, sink: ActuatorSink, devices: DeviceConfig) -> "ActuatorBank":
        return cls(
            sink,
            motors=tuple(devices.motor_ids),
            solenoids=tuple(devices.solenoid_channels),
            inverted=devices.inverted_motors,
        )

    def set_motor(self, name: str, value: float) -> None:
        if name not in self.motors:
            raise ValueError(f"Unknown motor '{name}'")
        self.sink.set_motor(name, -value if name in self.inverted else value)

    def set_wheels(self, wheels: WheelCommands) -> None:
        for name, value in wheels.as_dict().items():
            self.set_motor(name, value)

    def set_solenoid(self, name: str, on: bool) -> None:
        if name not in self.solenoids:
            raise ValueError(f"Unknown solenoid '{name}'")
        self.sink.set_solenoid(name, on)

    def neutral(self) -> None:
        for name in self.motors:
            self.sink.set_motor(name, 0.0)


__all__ = [
    "ActuatorSink",
    "LoggingActuatorSink",
    "CanActuatorSink",
    "ActuatorBank",
]
