#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import argparse
import logging
import sys
import threading
import time
from dataclasses import replace
from typing import Dict, Optional

import can
from pynput import keyboard

from teleop_lib.config import TeleopConfig
from teleop_lib.service import TeleopService


print_lock = threading.Lock()
status_len_lock = threading.Lock()
last_status_len = 0
is_running = True
teleop_service: Optional[TeleopService] = None


def padded_status_print(text: str) -> None:
    global last_status_len
    with status_len_lock:
        pad = " " * max(0, last_status_len - len(text))
        msg = "\r" + text + pad
        with print_lock:
            sys.stdout.write(msg)
            sys.stdout.flush()
        last_status_len = len(text)


def status_callback(message: str) -> None:
    """Thread-safe print hook for controller log messages."""
    padded_status_print("")
    with print_lock:
        print("\n" + message)
        sys.stdout.flush()


def format_status(status: Dict[str, object]) -> str:
    state = status.get("state") or {}
    last = status.get("last_tick") or {}
    motors = last.get("motors", {})
    wheels = " ".join(
        f"{motors.get(name, 0.0):+.2f}"
        for name in ("front_left", "rear_left", "front_right", "rear_right")
    )
    steering = last.get("steering")
    steer_txt = f"{steering:+.3f}" if steering is not None else "off"
    return (
        f"[{state.get('drive_mode', '-')}/{state.get('gripper_state', '-')}] "
        f"wheels {wheels} | lift {motors.get('lift', 0.0):+.2f} "
        f"ext {motors.get('extension', 0.0):+.2f} | steer {steer_txt} "
        f"| ticks {status.get('ticks', 0)} overruns {status.get('overruns', 0)}"
    )


def on_press(key) -> bool:
    global is_running
    if key == keyboard.Key.esc:
        is_running = False
        return False
    char = getattr(key, "char", None)
    if char == "m" and teleop_service:
        status_callback(f"[Teleop] State: {teleop_service.status().get('state')}")
    return True


def main() -> None:
    global teleop_service, is_running

    parser = argparse.ArgumentParser(
        description="Gamepad teleop loop for the arcade/mecanum drive, arm and gripper."
    )
    parser.add_argument("--dry-run", action="store_true", help="Log commands instead of sending on CAN")
    parser.add_argument("--channel", default=None, help="CAN channel (default from TELEOP_CAN_CHANNEL or can0)")
    parser.add_argument("--period", type=float, default=None, help="Loop period in seconds (default 0.02)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = TeleopConfig.from_env()
    if args.channel:
        config = replace(config, devices=replace(config.devices, can_channel=args.channel))
    if args.period is not None:
        config = replace(config, period_s=args.period)

    teleop_service = TeleopService(config, status_hook=status_callback, dry_run=args.dry_run)
    try:
        teleop_service.start()
    except (RuntimeError, OSError, can.CanError) as exc:
        print(f"Failed to start teleop: {exc}")
        teleop_service.shutdown()
        return

    with print_lock:
        print("=" * 80)
        print("[m] print mode state   [Esc] stop and exit")
        print("=" * 80)

    listener = keyboard.Listener(on_press=on_press)
    listener.start()

    try:
        while is_running:
            padded_status_print(format_status(teleop_service.status()))
            time.sleep(0.5)
    except KeyboardInterrupt:
        is_running = False
    finally:
        listener.stop()
        padded_status_print("")
        with print_lock:
            print("\n\nStopping teleop loop...")
        teleop_service.shutdown()
        teleop_service = None
        with print_lock:
            print("Outputs neutral, CAN bus closed. Bye!")


if __name__ == "__main__":
    main()
