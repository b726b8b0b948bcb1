"""Saccade when the event rate drops, otherwise gaze at the event centroid."""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from evgaze.gabor import AddressEvent

HEAD_JOINTS = 6
EYE_TILT_JOINT = 3
EYE_PAN_JOINT = 4
HOME_SPEED = 30.0
HOME_ACCELERATION = 200.0
TICK_SECONDS = 80 * 10e-9
DEFAULT_SACCADE_STEP = math.pi / 36


def _with_slash(name: str) -> str:
    return name if name.startswith("/") else "/" + name


@dataclass
class SaccadeConfig:
    """Settings of the automatic saccade module."""

    name: str = "/autoSaccade"
    robot_name: str = "/icubSim"
    check_period: float = 0.1
    min_vps: float = 75000.0
    timeout: float = 1.0
    ref_speed: float = 300.0
    ref_acc: float = 200.0
    cam_width: int = 304
    cam_height: int = 240

    def __post_init__(self) -> None:
        if not self.name or not self.robot_name:
            raise ValueError("module and robot names must not be empty")
        self.name = _with_slash(self.name)
        self.robot_name = _with_slash(self.robot_name)

    @property
    def simulated(self) -> bool:
        """Tell whether the robot is the simulator."""
        return self.robot_name == "/icubSim"


class EventRateMonitor:
    """Collect events during a reading window and measure their rate."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[AddressEvent] = []
        self._count = 0
        self._latest = 0
        self._reading = False
        self._started: float | None = None
        self.rate = 0.0

    @property
    def reading(self) -> bool:
        """Tell whether events are currently being collected."""
        return self._reading

    def on_events(self, events: Iterable[AddressEvent]) -> None:
        """Append a batch of events if the monitor is reading."""
        if not self._reading:
            return
        batch = list(events)
        if not batch:
            return
        with self._lock:
            self._events.extend(batch)
            self._latest = batch[-1].stamp
            self._count += len(batch)

    def start(self, now: float) -> None:
        """Clear collected events and begin a reading window at time ``now``."""
        with self._lock:
            self._events.clear()
            self._reading = True
            self._started = now

    def stop(self, now: float) -> float:
        """End the reading window at ``now`` and return events per second."""
        with self._lock:
            if self._started is None:
                raise RuntimeError("monitor was not started")
            elapsed = now - self._started
            if elapsed <= 0:
                raise ValueError("stop time must be after start time")
            self._reading = False
            self.rate = self._count / elapsed
            self._count = 0
            self._started = None
            return self.rate

    def pop_count(self) -> int:
        """Return the number of events counted so far and reset it."""
        with self._lock:
            count, self._count = self._count, 0
            return count

    def take_events(self) -> list[AddressEvent]:
        """Return the collected events and clear them."""
        with self._lock:
            events, self._events = self._events, []
            return events

    def latest_stamp(self) -> int:
        """Return the timestamp of the most recent event received."""
        return self._latest


def center_of_mass(
    events: Iterable[AddressEvent],
    min_events: float,
    cam_width: int,
    cam_height: int,
) -> tuple[tuple[int, int] | None, tuple[int, int] | None] | None:
    """Return the flipped (left, right) event centroids in image pixels.

    A camera whose event count does not exceed ``min_events / 2`` gets None.
    The whole result is None when there are no events at all.
    """
    sums = {0: [0, 0, 0], 1: [0, 0, 0]}
    for event in events:
        total = sums[1 if event.channel else 0]
        total[0] += event.x
        total[1] += event.y
        total[2] += 1
    if sums[0][2] == 0 and sums[1][2] == 0:
        return None

    def centroid(total: list[int]) -> tuple[int, int] | None:
        x_sum, y_sum, size = total
        if size <= min_events / 2:
            return None
        # the images are flipped with respect to the camera orientation
        x = int(x_sum / size)
        y = int(y_sum / size)
        return cam_width - 1 - x, cam_height - 1 - y

    return centroid(sums[0]), centroid(sums[1])


def saccade_trajectory(step: float = DEFAULT_SACCADE_STEP) -> Iterator[tuple[float, float]]:
    """Yield (eye tilt, eye pan) positions tracing one elliptical saccade."""
    if step <= 0:
        raise ValueError("step must be positive")
    theta = 0.0
    while theta < 2 * math.pi:
        yield math.cos(theta), 2 * math.sin(theta)
        theta += step


def event_rate(count: int, latest: float, previous: float) -> float:
    """Return events per second between two timestamps in sensor ticks."""
    period = latest - previous
    if period <= 0:
        return 0.0
    return count / (period * TICK_SECONDS)