"""Visual-space velocity control of a robot head and stereo target tracking."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from evgaze.vergence import ControlMode

log = logging.getLogger(__name__)

HEAD_AXES = 6
LEFT = 0
RIGHT = 1

NECK_PITCH = 0
NECK_ROLL = 1
NECK_YAW = 2
EYES_TILT = 3
EYES_PAN = 4
EYES_VERGENCE = 5

_GAINS = (2.0, 0.0, 2.0, 2.5, 2.5, 1.0)

_TILT_LOWER = -6.0
_TILT_UPPER = 20.0


class PID:
    """A proportional-integral controller."""

    def __init__(self, kp: float = 0.0, ki: float = 0.0) -> None:
        self.kp = kp
        self.ki = ki
        self.integral = 0.0

    def command(self, reference: float, feedback: float, dt: float) -> float:
        """Return the control output for one step of length ``dt``."""
        error = reference - feedback
        self.integral += error * dt
        return self.kp * error + self.ki * self.integral

    def reset(self) -> None:
        """Clear the accumulated integral."""
        self.integral = 0.0


class HeadDriver(Protocol):
    """The joint-level interface of a robot head under velocity control."""

    def axes(self) -> int:
        """Return the number of head joints."""

    def encoders(self) -> Sequence[float]:
        """Return the current joint angles in degrees."""

    def velocity_move(self, velocities: Sequence[float]) -> None:
        """Command a velocity for every joint."""

    def set_control_modes(self, modes: Sequence[ControlMode]) -> None:
        """Switch the control mode of every joint."""


class EyeControlPID:
    """Keep a visual target at the image centre by moving eyes and neck."""

    def __init__(self, head: HeadDriver, height: int, width: int) -> None:
        axes = head.axes()
        if axes != HEAD_AXES:
            raise ValueError(f"incorrect number of axes: {axes} (expected {HEAD_AXES})")
        self.head = head
        self.u_fixation = width // 2
        self.v_fixation = height // 2
        self.controllers = [PID(kp, 0.0) for kp in _GAINS]
        self.velocity: list[float] = [0.0] * HEAD_AXES
        self.set_velocity_control()

    def set_velocity_control(self) -> None:
        """Put every head joint in velocity mode."""
        self.head.set_control_modes([ControlMode.VELOCITY] * HEAD_AXES)

    def reset_to_position_control(self) -> None:
        """Put every head joint back in position mode."""
        self.head.set_control_modes([ControlMode.POSITION] * HEAD_AXES)

    def _eyes_tilt(self, v: float, encs: Sequence[float], dt: float) -> float:
        tilt_pid = self.controllers[EYES_TILT]
        tilt = tilt_pid.command(self.v_fixation, v, dt)
        error = self.v_fixation - v
        tilt_angle = encs[EYES_TILT]
        if (tilt_angle < _TILT_LOWER and error < 0) or (tilt_angle > _TILT_UPPER and error > 0):
            tilt = 0.0
            tilt_pid.reset()
        return tilt

    def _send(
        self,
        encs: Sequence[float],
        eyes_tilt: float,
        eyes_pan: float,
        eyes_ver: float,
        dt: float,
    ) -> tuple[float, ...]:
        neck_tilt = -self.controllers[NECK_PITCH].command(0.0, encs[EYES_TILT], dt)
        neck_pan = self.controllers[NECK_YAW].command(0.0, encs[EYES_PAN], dt)
        self.velocity = [neck_tilt, 0.0, neck_pan, eyes_tilt, eyes_pan, eyes_ver]
        self.head.velocity_move(list(self.velocity))
        return tuple(self.velocity)

    def control_mono(self, u: float, v: float, dt: float) -> tuple[float, ...]:
        """Track a target seen by one camera; return the commanded velocities."""
        encs = self.head.encoders()
        eyes_pan = -self.controllers[EYES_PAN].command(self.u_fixation, u, dt)
        eyes_tilt = self._eyes_tilt(v, encs, dt)
        self.controllers[NECK_YAW].reset()
        eyes_ver = -self.controllers[EYES_VERGENCE].command(0.0, 0.0, dt)
        return self._send(encs, eyes_tilt, eyes_pan, eyes_ver, dt)

    def control_stereo(
        self, ul: float, vl: float, ur: float, vr: float, dt: float
    ) -> tuple[float, ...]:
        """Track a target seen by both cameras; return the commanded velocities."""
        encs = self.head.encoders()
        eyes_pan = -self.controllers[EYES_PAN].command(self.u_fixation, ul, dt)
        eyes_tilt = self._eyes_tilt(vl, encs, dt)
        eyes_ver = -self.controllers[EYES_VERGENCE].command(0.0, ul - ur, dt)
        # feed-forward correction reduces the interplay between vergence and pan
        eyes_pan -= eyes_ver / 2.0
        return self._send(encs, eyes_tilt, eyes_pan, eyes_ver, dt)

    def control_reset(self) -> None:
        """Reset every controller and stop the head."""
        for pid in self.controllers:
            pid.reset()
        self.velocity = [0.0] * HEAD_AXES
        self.head.velocity_move(list(self.velocity))


@dataclass(frozen=True)
class GaussianEvent:
    """A cluster-track event: a Gaussian blob seen by one camera."""

    x: float
    y: float
    channel: int = LEFT
    polarity: int = 1
    sigx: float = 0.0
    sigy: float = 0.0
    stamp: int = 0


@dataclass(frozen=True)
class Target:
    """The last known position and radius of a target in one camera."""

    x: float = 0.0
    y: float = 0.0
    radius: float = 0.0
    present: bool = False


class TargetTracker:
    """Keep the most recent target for each camera from cluster events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._left = Target(radius=-100.0)
        self._right = Target(radius=100.0)

    @staticmethod
    def _apply(current: Target, event: GaussianEvent) -> Target:
        if event.polarity == 0:
            return Target(current.x, current.y, current.radius, False)
        return Target(event.x, event.y, event.sigx, True)

    def update(self, events: Iterable[GaussianEvent]) -> None:
        """Update both targets from the latest event of each camera."""
        batch = list(events)
        if not batch:
            log.warning("empty event batch")
            return
        with self._lock:
            left_done = right_done = False
            for event in reversed(batch):
                if left_done and right_done:
                    break
                if event.channel == RIGHT and not right_done:
                    right_done = True
                    self._right = self._apply(self._right, event)
                elif event.channel == LEFT and not left_done:
                    left_done = True
                    self._left = self._apply(self._left, event)

    def targets(self) -> tuple[Target, Target]:
        """Return the (left, right) targets."""
        with self._lock:
            return self._left, self._right