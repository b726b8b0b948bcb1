"""Gaze and reaching control of a robot head and arm from stereo targets."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from evgaze.control import EyeControlPID, Target

HOME_TIMEOUT = 5.0
MIN_TARGET_DISTANCE = -0.10
ARM_REACH = 0.3


class GazeController(Protocol):
    """The Cartesian gaze interface of a robot head."""

    def triangulate(self, left_pixel: Sequence[float], right_pixel: Sequence[float]) -> Sequence[float]:
        """Return the 3D point, in the robot frame, seen at the two pixels."""

    def look_at_stereo(self, left_pixel: Sequence[float], right_pixel: Sequence[float]) -> None:
        """Move the gaze towards the point seen at the two pixels."""

    def fixation_point(self) -> Sequence[float]:
        """Return the current fixation point in the robot frame."""

    def left_eye_pose(self) -> tuple[Sequence[float], Sequence[float]]:
        """Return the left eye position and axis-angle orientation."""


class ArmController(Protocol):
    """The Cartesian interface of a robot arm."""

    def pose(self) -> tuple[Sequence[float], Sequence[float]]:
        """Return the hand position and axis-angle orientation."""

    def go_to_position(self, position: Sequence[float]) -> None:
        """Move the hand to a position."""

    def go_to_pose(self, position: Sequence[float], orientation: Sequence[float]) -> None:
        """Move the hand to a position and orientation."""


@dataclass
class GazeConfig:
    """Settings of the gaze demonstration."""

    name: str = "/vGazeDemo"
    y_thresh: float = 20.0
    r_thresh: float = 5.0
    period: float = 0.01
    start: bool = False
    grasp: bool = False
    velocity: bool = False
    height: int = 240
    width: int = 304
    arm_traj_time: float = 1.0
    use_arm: bool = False


@dataclass(frozen=True)
class GazeUpdate:
    """The outcome of one control step."""

    left: Target
    right: Target
    gaze_performed: bool
    homed: bool
    cartesian: tuple[float, ...] | None
    debug: tuple[float, ...] | None


def parse_targets(data: Sequence[float]) -> tuple[Target, Target]:
    """Split a six-value target vector into (left, right) targets.

    Each camera contributes x, y and radius; an x of -1 marks a missing target.
    """
    values = [float(v) for v in data]
    if len(values) < 6:
        raise ValueError("target data needs six values")
    left = Target(values[0], values[1], values[2], values[0] != -1.0)
    right = Target(values[3], values[4], values[5], values[3] != -1.0)
    return left, right


def stereo_consistent(left: Target, right: Target, y_thresh: float, r_thresh: float) -> bool:
    """Tell whether the two targets agree in row and radius within the thresholds."""
    return abs(right.y - left.y) <= y_thresh and abs(right.radius - left.radius) <= r_thresh


def arm_target(fixation: Sequence[float]) -> tuple[float, float, float]:
    """Return a reachable hand position in the direction of a fixation point."""
    x, y, z = (float(v) for v in fixation[:3])
    x = -ARM_REACH
    if abs(y) >= 0.1:
        sign = -1.0 if y < 0 else 1.0
        scale = math.sqrt((x * x) / (y * y) + 1)
        y_hat = sign * ARM_REACH / scale
        x = x * (y_hat / y)
        y = y_hat
    y -= 0.1
    z = max(z - 0.15, 0.0)
    return x, y, z


def _axis_to_rotation(axis_angle: Sequence[float]) -> np.ndarray:
    axis = np.asarray(axis_angle[:3], dtype=float)
    angle = float(axis_angle[3])
    norm = np.linalg.norm(axis)
    if norm < 1e-9:
        return np.eye(3)
    kx, ky, kz = axis / norm
    k = np.array([[0.0, -kz, ky], [kz, 0.0, -kx], [-ky, kx, 0.0]])
    return np.eye(3) + math.sin(angle) * k + (1.0 - math.cos(angle)) * (k @ k)


def eye_frame_point(
    point: Sequence[float],
    eye_position: Sequence[float],
    eye_axis_angle: Sequence[float],
) -> tuple[float, float, float]:
    """Express a robot-frame point in the frame of an eye at the given pose."""
    if len(eye_axis_angle) < 4:
        raise ValueError("eye orientation needs an axis and an angle")
    rotation = _axis_to_rotation(eye_axis_angle)
    offset = np.asarray(point[:3], dtype=float) - np.asarray(eye_position[:3], dtype=float)
    local = rotation.T @ offset
    return float(local[0]), float(local[1]), float(local[2])


class GazeDemo:
    """Follow a stereo target with the gaze, and optionally reach with the arm."""

    def __init__(
        self,
        config: GazeConfig | None = None,
        gaze: GazeController | None = None,
        arm: ArmController | None = None,
        velocity_controller: EyeControlPID | None = None,
    ) -> None:
        self.config = config or GazeConfig()
        if self.config.velocity and velocity_controller is None:
            raise ValueError("velocity control needs a velocity controller")
        self.gaze = gaze
        self.arm = arm
        self.velocity_controller = velocity_controller
        self.gazing_active = self.config.start
        self.arm_target_position: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self._arm_home = arm.pose() if arm is not None else None
        self._last_gaze: float | None = None
        self._last_velocity: float | None = None

    @staticmethod
    def _pixels(left: Target, right: Target) -> tuple[tuple[float, float], tuple[float, float]]:
        return (left.x, left.y), (right.x, right.y)

    def control_cartesian(self, left: Target, right: Target) -> bool:
        """Gaze at a consistent stereo target; return whether a gaze was sent."""
        if not (left.present and right.present):
            return False
        if not stereo_consistent(left, right, self.config.y_thresh, self.config.r_thresh):
            return False
        if not self.gazing_active or self.gaze is None:
            return False
        left_px, right_px = self._pixels(left, right)
        point = self.gaze.triangulate(left_px, right_px)
        if point[0] > MIN_TARGET_DISTANCE:
            return False
        self.gaze.look_at_stereo(left_px, right_px)
        return True

    def control_arm(self, left: Target, right: Target) -> bool:
        """Reach towards the fixation point; return whether the arm was moved."""
        if not (left.present and right.present):
            return False
        if not self.gazing_active or self.gaze is None or self.arm is None:
            return False
        target = arm_target(self.gaze.fixation_point())
        self.arm.go_to_position(target)
        self.arm_target_position = target
        return True

    def control_velocity(self, left: Target, right: Target, dt: float) -> bool:
        """Track the target in image space by velocity control of the head."""
        controller = self.velocity_controller
        if controller is None:
            raise RuntimeError("no velocity controller")
        if left.present:
            same_y = abs(right.y - left.y) < self.config.y_thresh
            same_r = abs(right.radius - left.radius) < self.config.r_thresh
            if right.present and same_y and same_r:
                controller.control_stereo(left.x, left.y, right.x, right.y, dt)
            else:
                controller.control_mono(left.x, left.y, dt)
        elif right.present:
            controller.control_mono(right.x, right.y, dt)
        else:
            controller.control_reset()
            return False
        return True

    def control_external(self, left: Target, right: Target) -> tuple[float, ...] | None:
        """Return target coordinates in the left-eye frame for an external grasper.

        The tuple holds the eye-frame x, y, z, a fixed 0.5, the left pixel
        and a detection flag of 1; None when no valid target is seen.
        """
        if not (left.present and right.present):
            return None
        if not stereo_consistent(left, right, self.config.y_thresh, self.config.r_thresh):
            return None
        if not self.gazing_active or self.gaze is None or self.arm is None:
            return None
        left_px, right_px = self._pixels(left, right)
        point = self.gaze.triangulate(left_px, right_px)
        if point[0] > MIN_TARGET_DISTANCE:
            return None
        eye_position, eye_orientation = self.gaze.left_eye_pose()
        local = eye_frame_point(point, eye_position, eye_orientation)
        return (*local, 0.5, left_px[0], left_px[1], 1.0)

    def _debug_values(self, left: Target, right: Target) -> tuple[float, ...] | None:
        if self.gaze is None:
            return None
        left_px, right_px = self._pixels(left, right)
        point = self.gaze.triangulate(left_px, right_px)
        second = self.gaze.fixation_point()
        if self.arm is not None:
            second = self.arm.pose()[0]
        return tuple(float(v) for v in (*point[:3], *second[:3]))

    def update(self, data: Sequence[float], now: float) -> GazeUpdate:
        """Run one control step on a target vector at time ``now``."""
        homed = False
        if self._last_gaze is None:
            self._last_gaze = now
        if now - self._last_gaze > HOME_TIMEOUT:
            if self.arm is not None and self._arm_home is not None:
                self.arm.go_to_pose(*self._arm_home)
                homed = True
            self._last_gaze = now

        left, right = parse_targets(data)
        cartesian = None
        if self.config.grasp:
            cartesian = self.control_external(left, right)
            performed = True
        else:
            if self.config.velocity:
                dt = 0.0 if self._last_velocity is None else now - self._last_velocity
                self._last_velocity = now
                self.velocity_controller.set_velocity_control()
                performed = self.control_velocity(left, right, dt)
            else:
                performed = self.control_cartesian(left, right)
            if self.config.use_arm:
                self.control_arm(left, right)

        debug = self._debug_values(left, right)
        if performed:
            self._last_gaze = now
        return GazeUpdate(left, right, performed, homed, cartesian, debug)

    def respond(self, command: str | Sequence) -> str:
        """Handle a start or stop command and return the reply text."""
        words = command.split() if isinstance(command, str) else list(command)
        name = str(words[0]) if words else ""
        if name == "start":
            self.gazing_active = True
            return "starting"
        if name == "stop":
            self.gazing_active = False
            return "stopping"
        raise ValueError(f"unknown command: {name!r}")