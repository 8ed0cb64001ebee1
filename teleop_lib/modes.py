"""Drive-mode and gripper toggles driven by button edges."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict


class DriveMode(enum.Enum):
    ARCADE = "arcade"
    MECANUM = "mecanum"


class GripperState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"


class EdgeDetector:
    """Turns a level-triggered button read into a single rising-edge event.

    ``update`` returns True only on the first tick the button reads pressed.
    The latch stays set while the button is held and clears on release.
    """

    def __init__(self) -> None:
        self.latched = False

    def update(self, pressed: bool) -> bool:
        if pressed and not self.latched:
            self.latched = True
            return True
        if not pressed:
            self.latched = False
        return False


@dataclass(frozen=True)
class ControlState:
    drive_mode: DriveMode = DriveMode.ARCADE
    gripper_state: GripperState = GripperState.CLOSED
    toggle_pressed: bool = False
    grabber_pressed: bool = False

    def as_dict(self) -> Dict[str, object]:
        return {
            "drive_mode": self.drive_mode.value,
            "gripper_state": self.gripper_state.value,
            "toggle_pressed": self.toggle_pressed,
            "grabber_pressed": self.grabber_pressed,
        }


def drive_mode_solenoids(mode: DriveMode) -> Dict[str, bool]:
    if mode is DriveMode.ARCADE:
        return {"drive_mode_a": True, "drive_mode_b": False}
    return {"drive_mode_a": False, "drive_mode_b": True}


def gripper_solenoids(state: GripperState) -> Dict[str, bool]:
    return {"gripper": state is GripperState.CLOSED}


class DriveModeToggle:
    def __init__(self, initial: DriveMode = DriveMode.ARCADE) -> None:
        self.mode = initial
        self.edge = EdgeDetector()

    def update(self, pressed: bool) -> Dict[str, bool]:
        """Return the solenoid outputs to emit this tick (empty when nothing fired)."""
        if not self.edge.update(pressed):
            return {}
        self.mode = DriveMode.MECANUM if self.mode is DriveMode.ARCADE else DriveMode.ARCADE
        return drive_mode_solenoids(self.mode)


class GripperToggle:
    def __init__(self, initial: GripperState = GripperState.CLOSED) -> None:
        self.state = initial
        self.edge = EdgeDetector()

    def update(self, pressed: bool) -> Dict[str, bool]:
        if not self.edge.update(pressed):
            return {}
        self.state = (
            GripperState.OPEN if self.state is GripperState.CLOSED else GripperState.CLOSED
        )
        return gripper_solenoids(self.state)


__all__ = [
    "DriveMode",
    "GripperState",
    "EdgeDetector",
    "ControlState",
    "DriveModeToggle",
    "GripperToggle",
    "drive_mode_solenoids",
    "gripper_solenoids",
]
