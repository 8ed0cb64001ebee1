"""Per-tick mapping from gamepad and vision inputs to actuator commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .actuators import ActuatorBank
from .config import TeleopConfig
from .inputs import ControllerSample, VisionSample
from .kinematics import WheelCommands, arcade_mix, mecanum_mix
from .modes import ControlState, DriveMode, DriveModeToggle, GripperToggle
from .steering import steering_adjust, steering_wheels

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]


@dataclass(frozen=True)
class TickResult:
    motors: Dict[str, float]
    solenoids: Dict[str, bool] = field(default_factory=dict)
    steering: Optional[float] = None
    state: ControlState = field(default_factory=ControlState)

    def as_dict(self) -> Dict[str, object]:
        return {
            "motors": dict(self.motors),
            "solenoids": dict(self.solenoids),
            "steering": self.steering,
            "state": self.state.as_dict(),
        }


class TeleopController:
    """Owns the drive-mode and gripper toggles and emits one command set per tick.

    Commands are written to ``actuators`` as they are produced, so the vision
    override replaces the drivetrain values already sent earlier in the tick.
    """

    def __init__(
        self,
        config: TeleopConfig,
        actuators: ActuatorBank,
        status_callback: Optional[StatusCallback] = None,
    ) -> None:
        self.config = config
        self.actuators = actuators
        self._drive_toggle = DriveModeToggle()
        self._gripper_toggle = GripperToggle()
        self._status_callback = status_callback

    def _log(self, message: str) -> None:
        if self._status_callback:
            self._status_callback(message)
        else:
            logger.info(message)

    @property
    def state(self) -> ControlState:
        return ControlState(
            drive_mode=self._drive_toggle.mode,
            gripper_state=self._gripper_toggle.state,
            toggle_pressed=self._drive_toggle.edge.latched,
            grabber_pressed=self._gripper_toggle.edge.latched,
        )

    def tick(
        self,
        driver: ControllerSample,
        operator: ControllerSample,
        vision: VisionSample,
    ) -> TickResult:
        inputs = self.config.inputs
        tuning = self.config.tuning
        motors: Dict[str, float] = {}
        solenoids: Dict[str, bool] = {}

        # Drive mode
        outputs = self._drive_toggle.update(driver.button(inputs.toggle_button))
        if outputs:
            self._emit_solenoids(outputs, solenoids)
            self._log(f"[Drive] Mode switched to {self._drive_toggle.mode.value}")

        # Drivetrain
        left_x = driver.axis(inputs.drive_x_axis) * tuning.throttle_cap
        left_y = driver.axis(inputs.drive_y_axis) * tuning.throttle_cap
        right_x = driver.axis(inputs.turn_axis) * tuning.throttle_cap
        if self._drive_toggle.mode is DriveMode.ARCADE:
            wheels = arcade_mix(left_x, left_y)
        else:
            wheels = mecanum_mix(left_x, left_y, right_x)
        self._emit_wheels(wheels, motors)

        # Vision override
        steering: Optional[float] = None
        if driver.button(inputs.target_button):
            steering = steering_adjust(
                vision.tx,
                kp=tuning.vision_kp,
                min_command=tuning.vision_min_command,
                max_command=tuning.vision_max_command,
            )
            self._emit_wheels(steering_wheels(steering), motors)

        # Arm and wrist
        self._emit_motor("lift", -operator.axis(inputs.lift_axis), motors)
        self._emit_motor("extension", operator.axis(inputs.extend_axis), motors)
        self._emit_motor(
            "wrist_rotate", operator.axis(inputs.wrist_rotate_axis) * tuning.gripper_cap, motors
        )
        self._emit_motor(
            "wrist_pivot", operator.axis(inputs.wrist_pivot_axis) * tuning.gripper_cap, motors
        )

        # Gripper
        outputs = self._gripper_toggle.update(operator.button(inputs.grabber_button))
        if outputs:
            self._emit_solenoids(outputs, solenoids)
            self._log(f"[Gripper] {self._gripper_toggle.state.value}")

        return TickResult(motors=motors, solenoids=solenoids, steering=steering, state=self.state)

    def _emit_motor(self, name: str, value: float, record: Dict[str, float]) -> None:
        self.actuators.set_motor(name, value)
        record[name] = value

    def _emit_wheels(self, wheels: WheelCommands, record: Dict[str, float]) -> None:
        self.actuators.set_wheels(wheels)
        record.update(wheels.as_dict())

    def _emit_solenoids(self, outputs: Dict[str, bool], record: Dict[str, bool]) -> None:
        for name, on in outputs.items():
            self.actuators.set_solenoid(name, on)
            record[name] = on


__all__ = ["TickResult", "TeleopController"]
