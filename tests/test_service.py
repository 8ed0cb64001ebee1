import time

import pytest

from fakes import gamepad
from teleop_lib import actuators, inputs, service
from teleop_lib.config import TeleopConfig
from teleop_lib.inputs import StaticControllerSource, VisionTable
from teleop_lib.modes import DriveMode


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


def make_service(sink, driver=None, operator=None, period_s=0.005, **kwargs):
    return service.TeleopService(
        TeleopConfig(period_s=period_s),
        sink=sink,
        driver=driver or StaticControllerSource(),
        operator=operator or StaticControllerSource(),
        status_hook=lambda _msg: None,
        **kwargs,
    )


def test_run_once_requires_setup(sink):
    teleop = make_service(sink)
    with pytest.raises(RuntimeError):
        teleop.run_once()


def test_run_once_ticks_controller_with_live_vision(sink):
    driver = StaticControllerSource(gamepad({1: 1.0}, buttons={10}))
    teleop = make_service(sink, driver=driver)
    teleop.setup()

    teleop.vision.update({"tx": 10.0, "tv": 1.0})
    result = teleop.run_once()

    assert result.steering == pytest.approx(0.045)
    status = teleop.status()
    assert status["ticks"] == 1
    assert status["running"] is False
    assert status["vision"]["has_target"] is True
    assert status["last_tick"]["steering"] == pytest.approx(0.045)
    assert status["state"]["drive_mode"] == "arcade"


def test_state_persists_between_ticks(sink):
    driver = StaticControllerSource(gamepad(buttons={9}))
    teleop = make_service(sink, driver=driver)
    teleop.setup()

    for _ in range(3):
        result = teleop.run_once()
    assert result.state.drive_mode is DriveMode.MECANUM

    driver.current = gamepad()
    teleop.run_once()
    driver.current = gamepad(buttons={9})
    assert teleop.run_once().state.drive_mode is DriveMode.ARCADE


def test_loop_runs_and_shutdown_sends_neutral(sink):
    driver = StaticControllerSource(gamepad({1: 1.0}))
    teleop = make_service(sink, driver=driver)
    teleop.start()
    try:
        assert teleop.is_running()
        assert wait_for(lambda: teleop.status()["ticks"] >= 3)
    finally:
        teleop.shutdown()

    assert not teleop.is_running()
    tail = sink.motor_calls[-8:]
    assert {name for name, _ in tail} == {
        "front_left",
        "rear_left",
        "front_right",
        "rear_right",
        "lift",
        "extension",
        "wrist_rotate",
        "wrist_pivot",
    }
    assert all(value == 0.0 for _, value in tail)


def test_loop_survives_failing_tick(sink):
    class FlakySource:
        def __init__(self):
            self.calls = 0

        def sample(self):
            self.calls += 1
            if self.calls == 1:
                raise OSError("controller unplugged")
            return gamepad()

    teleop = make_service(sink, driver=FlakySource())
    teleop.start()
    try:
        assert wait_for(lambda: teleop.status()["ticks"] >= 2)
        assert teleop.status()["errors"] == 1
    finally:
        teleop.shutdown()


def test_dry_run_uses_logging_sink():
    teleop = service.TeleopService(
        TeleopConfig(),
        driver=StaticControllerSource(),
        operator=StaticControllerSource(),
        status_hook=lambda _msg: None,
        dry_run=True,
    )
    teleop.setup()
    teleop.run_once()
    assert isinstance(teleop._sink, actuators.LoggingActuatorSink)
    assert teleop._sink.motors["front_left"] == 0.0
    teleop.shutdown()


def test_default_devices_open_joysticks_and_can(monkeypatch):
    events = []
    sent = []
    monkeypatch.setattr(inputs, "init_joysticks", lambda: events.append("init") or 2)
    monkeypatch.setattr(
        inputs, "open_controller", lambda port: events.append(("open", port)) or StaticControllerSource()
    )
    monkeypatch.setattr(inputs, "pump_events", lambda: events.append("pump"))
    monkeypatch.setattr(inputs, "shutdown_joysticks", lambda: events.append("quit"))
    monkeypatch.setattr(service, "ensure_buses", lambda channels: events.append(("bus", list(channels))))
    monkeypatch.setattr(service, "shutdown_buses", lambda: events.append("bus_down"))
    monkeypatch.setattr(
        actuators, "send_motor_command", lambda bus, dev, value: sent.append((bus, dev, value))
    )

    teleop = service.TeleopService(TeleopConfig(), vision=VisionTable(), status_hook=lambda _m: None)
    teleop.setup()
    teleop.run_once()
    teleop.shutdown()

    assert events[:4] == ["init", ("open", 0), ("open", 1), ("bus", ["can0"])]
    assert "pump" in events
    assert events[-2:] == ["bus_down", "quit"]
    # one full tick plus the neutral set on shutdown
    assert len(sent) == 16
    assert all(bus == "can0" for bus, _, _ in sent)
