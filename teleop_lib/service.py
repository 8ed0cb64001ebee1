"""Fixed-period loop that feeds live inputs through the teleop controller."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional

from . import inputs
from .actuators import ActuatorBank, ActuatorSink, CanActuatorSink, LoggingActuatorSink
from .can_bus import ensure_buses, shutdown_buses
from .config import TeleopConfig
from .controller import TeleopController, TickResult
from .inputs import ControllerSource, VisionTable

logger = logging.getLogger(__name__)

StatusHook = Callable[[str], None]


class TeleopService:
    """Facade that owns the devices, the controller and the loop thread.

    Sources and sink default to pygame joysticks and the CAN bus; pass your own
    to run headless.
    """

    def __init__(
        self,
        config: Optional[TeleopConfig] = None,
        sink: Optional[ActuatorSink] = None,
        driver: Optional[ControllerSource] = None,
        operator: Optional[ControllerSource] = None,
        vision: Optional[VisionTable] = None,
        status_hook: Optional[StatusHook] = None,
        dry_run: bool = False,
    ) -> None:
        self.config = config or TeleopConfig()
        self.vision = vision or VisionTable()
        self.dry_run = dry_run
        self._sink = sink
        self._driver = driver
        self._operator = operator
        self._status_hook = status_hook or (lambda msg: logger.info(msg))
        self._owns_can = False
        self._owns_joysticks = False
        self._bank: Optional[ActuatorBank] = None
        self._controller: Optional[TeleopController] = None
        self._last_result: Optional[TickResult] = None
        self._ticks = 0
        self._overruns = 0
        self._errors = 0
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --- Lifecycle ---------------------------------------------------------

    def setup(self) -> None:
        """Open inputs and outputs and build the controller (idempotent)."""
        with self._lock:
            if self._controller:
                return
            devices = self.config.devices
            if self._driver is None or self._operator is None:
                inputs.init_joysticks()
                self._owns_joysticks = True
                if self._driver is None:
                    self._driver = inputs.open_controller(devices.driver_port)
                if self._operator is None:
                    self._operator = inputs.open_controller(devices.operator_port)
            if self._sink is None:
                if self.dry_run:
                    self._sink = LoggingActuatorSink()
                else:
                    ensure_buses([devices.can_channel])
                    self._owns_can = True
                    self._sink = CanActuatorSink(devices)
            self._bank = ActuatorBank.from_devices(self._sink, devices)
            self._controller = TeleopController(
                self.config, self._bank, status_callback=self._status_hook
            )
            self._status_hook(
                f"[Teleop] Ready ({'dry run' if self.dry_run else devices.can_channel}, "
                f"{self.config.period_s * 1000:.0f} ms period)"
            )

    def start(self) -> None:
        with self._lock:
            self.setup()
            if self._thread and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name="teleop-loop", daemon=True)
            self._thread.start()

    def shutdown(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.config.period_s * 10))
        with self._lock:
            try:
                if self._bank:
                    self._bank.neutral()
            finally:
                if self._owns_can:
                    shutdown_buses()
                    self._owns_can = False
                    self._sink = None
                if self._owns_joysticks:
                    inputs.shutdown_joysticks()
                    self._owns_joysticks = False
                    self._driver = None
                    self._operator = None
                self._thread = None
                self._bank = None
                self._controller = None

    def is_running(self) -> bool:
        thread = self._thread
        return bool(thread and thread.is_alive())

    # --- Loop --------------------------------------------------------------

    def run_once(self) -> TickResult:
        with self._lock:
            if not self._controller:
                raise RuntimeError("Teleop service not initialised")
            if self._owns_joysticks:
                inputs.pump_events()
            result = self._controller.tick(
                self._driver.sample(), self._operator.sample(), self.vision.sample()
            )
            self._last_result = result
            self._ticks += 1
            return result

    def _run(self) -> None:
        period = self.config.period_s
        next_deadline = time.monotonic()
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                with self._lock:
                    self._errors += 1
                logger.exception("Teleop tick failed")
            next_deadline += period
            remaining = next_deadline - time.monotonic()
            if remaining < 0:
                with self._lock:
                    self._overruns += 1
                logger.debug("Teleop tick overran by %.1f ms", -remaining * 1000)
                next_deadline = time.monotonic()
                continue
            self._stop.wait(remaining)

    # --- Status ------------------------------------------------------------

    def status(self) -> Dict[str, object]:
        with self._lock:
            last = self._last_result.as_dict() if self._last_result else None
            state = self._controller.state.as_dict() if self._controller else None
            return {
                "running": self.is_running(),
                "dry_run": self.dry_run,
                "period_s": self.config.period_s,
                "ticks": self._ticks,
                "overruns": self._overruns,
                "errors": self._errors,
                "state": state,
                "last_tick": last,
                "vision": self.vision.sample().as_dict(),
            }


__all__ = ["TeleopService"]
