"""Gamepad and vision-feed snapshots consumed once per control tick."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Protocol, Tuple

import pygame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControllerSample:
    axes: Tuple[float, ...] = ()
    buttons: Tuple[bool, ...] = ()

    def axis(self, index: int) -> float:
        if 0 <= index < len(self.axes):
            return self.axes[index]
        return 0.0

    def button(self, index: int) -> bool:
        if 0 <= index < len(self.buttons):
            return self.buttons[index]
        return False


@dataclass(frozen=True)
class VisionSample:
    tx: float = 0.0
    ty: float = 0.0
    ta: float = 0.0
    ts: float = 0.0
    has_target: bool = False

    def as_dict(self) -> Dict[str, object]:
        return {
            "tx": self.tx,
            "ty": self.ty,
            "ta": self.ta,
            "ts": self.ts,
            "has_target": self.has_target,
        }


class VisionTable:
    """Thread-safe key/value store fed by the vision coprocessor."""

    def __init__(self, initial: Optional[Mapping[str, float]] = None) -> None:
        self._values: Dict[str, float] = dict(initial or {})
        self._lock = threading.Lock()

    def get_number(self, key: str, default: float = 0.0) -> float:
        with self._lock:
            return self._values.get(key, default)

    def put_number(self, key: str, value: float) -> None:
        with self._lock:
            self._values[key] = float(value)

    def update(self, values: Mapping[str, float]) -> None:
        with self._lock:
            for key, value in values.items():
                self._values[key] = float(value)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._values)

    def sample(self) -> VisionSample:
        values = self.snapshot()
        return VisionSample(
            tx=values.get("tx", 0.0),
            ty=values.get("ty", 0.0),
            ta=values.get("ta", 0.0),
            ts=values.get("ts", 0.0),
            has_target=values.get("tv", 0.0) >= 1.0,
        )


class ControllerSource(Protocol):
    def sample(self) -> ControllerSample:
        ...


@dataclass
class StaticControllerSource:
    """Source that always reports the same snapshot (headless runs, tests)."""

    current: ControllerSample = field(default_factory=ControllerSample)

    def sample(self) -> ControllerSample:
        return self.current


# --- pygame backend ----------------------------------------------------------


class PygameControllerSource:
    """Reads one pygame joystick. Call ``pump_events`` once per tick before sampling."""

    def __init__(self, joystick) -> None:
        self._joystick = joystick

    @property
    def name(self) -> str:
        return self._joystick.get_name()

    def sample(self) -> ControllerSample:
        js = self._joystick
        axes = tuple(float(js.get_axis(i)) for i in range(js.get_numaxes()))
        buttons = tuple(bool(js.get_button(i)) for i in range(js.get_numbuttons()))
        return ControllerSample(axes=axes, buttons=buttons)


def init_joysticks() -> int:
    pygame.init()
    pygame.joystick.init()
    count = pygame.joystick.get_count()
    logger.debug("pygame reports %d joystick(s)", count)
    return count


def open_controller(port: int) -> PygameControllerSource:
    count = pygame.joystick.get_count()
    if port >= count:
        raise RuntimeError(f"Controller port {port} not connected ({count} found).")
    joystick = pygame.joystick.Joystick(port)
    joystick.init()
    source = PygameControllerSource(joystick)
    logger.info("Opened controller %d: %s", port, source.name)
    return source


def pump_events() -> None:
    pygame.event.pump()


def shutdown_joysticks() -> None:
    pygame.joystick.quit()
    pygame.quit()


__all__ = [
    "ControllerSample",
    "VisionSample",
    "VisionTable",
    "ControllerSource",
    "StaticControllerSource",
    "PygameControllerSource",
    "init_joysticks",
    "open_controller",
    "pump_events",
    "shutdown_joysticks",
]
