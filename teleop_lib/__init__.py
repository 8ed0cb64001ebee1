"""Teleop control library for the arcade/mecanum robot with arm and gripper."""

from . import actuators, can_bus, config, controller, inputs, kinematics, modes, service, steering
from .config import TeleopConfig
from .controller import TeleopController, TickResult
from .service import TeleopService

__all__ = [
    "actuators",
    "can_bus",
    "config",
    "controller",
    "inputs",
    "kinematics",
    "modes",
    "service",
    "steering",
    "TeleopConfig",
    "TeleopController",
    "TickResult",
    "TeleopService",
]
