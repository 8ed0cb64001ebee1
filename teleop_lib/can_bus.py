"""Shared CAN-bus utilities used by the motor and pneumatics sinks."""

from __future__ import annotations

import logging
import math
import struct
import threading
from typing import Callable, Dict, Iterable

import can
from can import BusABC

logger = logging.getLogger(__name__)

BusProvider = Callable[[str], BusABC]

# Duty-cycle frame: 0x200 + device id, payload float32 LE + 4 pad bytes.
MOTOR_COMMAND_BASE = 0x200
# Solenoid frame: 0x300 + module id, payload [channel, state, 0...].
SOLENOID_COMMAND_BASE = 0x300


BUS_POOL: Dict[str, BusABC] = {}
BUS_LOCKS: Dict[str, threading.Lock] = {}
BUS_POOL_LOCK = threading.Lock()


def _default_bus_provider(channel: str) -> BusABC:
    """Factory used to construct new CAN bus connections."""
    return can.interface.Bus(channel=channel, interface="socketcan")


_bus_provider: BusProvider = _default_bus_provider


def set_bus_provider(provider: BusProvider) -> None:
    """Configure a custom bus factory (handy for tests)."""
    global _bus_provider
    _bus_provider = provider


def reset_bus_provider() -> None:
    """Restore the default bus factory."""
    global _bus_provider
    _bus_provider = _default_bus_provider


def ensure_buses(channels: Iterable[str]) -> None:
    """Initialise CAN buses for the provided channel names."""
    with BUS_POOL_LOCK:
        for name in channels:
            if name in BUS_POOL:
                continue
            bus = _bus_provider(name)
            BUS_POOL[name] = bus
            BUS_LOCKS[name] = threading.Lock()
            logger.debug("Initialised CAN bus %s", name)


def shutdown_buses() -> None:
    """Shutdown all active CAN buses and clear state."""
    with BUS_POOL_LOCK:
        for name, bus in list(BUS_POOL.items()):
            try:
                bus.shutdown()
                logger.debug("Shutdown CAN bus %s", name)
            except Exception:  # pragma: no cover - defensive
                logger.exception("Failed to shutdown CAN bus %s", name)
        BUS_POOL.clear()
        BUS_LOCKS.clear()


def _require_bus(bus_name: str) -> BusABC:
    if bus_name not in BUS_POOL:
        raise RuntimeError(f"Bus '{bus_name}' not initialised.")
    return BUS_POOL[bus_name]


def _send(bus_name: str, arbitration_id: int, payload: bytes) -> None:
    bus = _require_bus(bus_name)
    msg = can.Message(arbitration_id=arbitration_id, data=payload, is_extended_id=False)
    with BUS_LOCKS[bus_name]:
        bus.send(msg)


def encode_motor_command(value: float) -> bytes:
    duty = float(value)
    if math.isnan(duty):
        duty = 0.0
    duty = max(-1.0, min(1.0, duty))
    return struct.pack("<f", duty) + b"\x00" * 4


def decode_motor_command(payload: bytes) -> float:
    return struct.unpack("<f", bytes(payload[:4]))[0]


def send_motor_command(bus_name: str, device_id: int, value: float) -> None:
    """Send a duty-cycle command in [-1, 1]; larger magnitudes are clipped."""
    _send(bus_name, MOTOR_COMMAND_BASE + device_id, encode_motor_command(value))


def send_solenoid_command(bus_name: str, module_id: int, channel: int, on: bool) -> None:
    if not 0 <= channel <= 0xFF:
        raise ValueError(f"Solenoid channel out of range: {channel}")
    payload = bytes([channel, 1 if on else 0]) + b"\x00" * 6
    _send(bus_name, SOLENOID_COMMAND_BASE + module_id, payload)


__all__ = [
    "BUS_POOL",
    "BUS_LOCKS",
    "BUS_POOL_LOCK",
    "MOTOR_COMMAND_BASE",
    "SOLENOID_COMMAND_BASE",
    "ensure_buses",
    "shutdown_buses",
    "encode_motor_command",
    "decode_motor_command",
    "send_motor_command",
    "send_solenoid_command",
    "set_bus_provider",
    "reset_bus_provider",
]
