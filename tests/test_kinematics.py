import pytest

from teleop_lib.kinematics import WheelCommands, arcade_mix, mecanum_mix


@pytest.mark.parametrize(
    "left_x, left_y",
    [(0.0, 0.0), (0.6, 0.0), (-0.6, 0.6), (0.3, -0.45), (0.6, 0.6)],
)
def test_arcade_sides(left_x, left_y):
    wheels = arcade_mix(left_x, left_y)
    assert wheels.front_left == pytest.approx(left_y - left_x)
    assert wheels.rear_left == pytest.approx(left_y - left_x)
    assert wheels.front_right == pytest.approx(left_y + left_x)
    assert wheels.rear_right == pytest.approx(left_y + left_x)


def test_arcade_is_not_clipped():
    wheels = arcade_mix(-0.6, 0.6)
    assert wheels.front_left == pytest.approx(1.2)


def test_mecanum_straight_forward():
    wheels = mecanum_mix(0.0, 1.0, 0.0)
    assert wheels == WheelCommands(1.0, 1.0, 1.0, 1.0)


def test_mecanum_forward_plus_strafe_normalises():
    wheels = mecanum_mix(1.0, 1.0, 0.0)
    assert wheels.front_left == pytest.approx(0.0)
    assert wheels.rear_left == pytest.approx(1.0)
    assert wheels.front_right == pytest.approx(1.0)
    assert wheels.rear_right == pytest.approx(0.0)


def test_mecanum_small_inputs_are_not_scaled_up():
    wheels = mecanum_mix(0.1, 0.2, 0.1)
    # denominator stays 1 when the magnitudes sum below 1
    assert wheels.front_left == pytest.approx(0.2 - 0.1 - 0.1)
    assert wheels.rear_left == pytest.approx(0.2 + 0.1 - 0.1)
    assert wheels.front_right == pytest.approx(0.2 + 0.1 + 0.1)
    assert wheels.rear_right == pytest.approx(0.2 - 0.1 + 0.1)


def test_mecanum_outputs_never_exceed_unit():
    for lx in (-1.0, -0.4, 0.0, 0.7, 1.0):
        for ly in (-1.0, 0.0, 0.5, 1.0):
            for rx in (-1.0, 0.0, 0.3, 1.0):
                wheels = mecanum_mix(lx, ly, rx)
                assert all(abs(v) <= 1.0 + 1e-9 for v in wheels.as_dict().values())


def test_mecanum_pure_rotation():
    wheels = mecanum_mix(0.0, 0.0, 0.5)
    assert wheels.front_left == pytest.approx(-0.5)
    assert wheels.rear_left == pytest.approx(-0.5)
    assert wheels.front_right == pytest.approx(0.5)
    assert wheels.rear_right == pytest.approx(0.5)
