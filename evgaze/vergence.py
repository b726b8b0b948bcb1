"""Vergence control from a bank of event-driven stereo Gabor filters."""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np

from evgaze.gabor import AddressEvent, GaborFilter

VERGENCE_JOINT = 5
MAX_VERGENCE = 47.0
MIN_VERGENCE = 5.0
RESET_VERGENCE = 10.0

LEFT_COLOUR = (255, 255, 0)
RIGHT_COLOUR = (255, 0, 255)


class ControlMode(Enum):
    """Control modes a head joint can be put in."""

    POSITION = "position"
    VELOCITY = "velocity"


class VergenceHead(Protocol):
    """The joint-level interface of a robot head used for vergence."""

    def encoders(self) -> Sequence[float]:
        """Return the current joint angles in degrees."""

    def velocity_move(self, joint: int, speed: float) -> None:
        """Command a joint velocity."""

    def position_move(self, joint: int, position: float) -> None:
        """Command a joint position."""

    def set_control_mode(self, joint: int, mode: ControlMode) -> None:
        """Switch the control mode of a joint."""


class FixedWindow:
    """A first-in first-out window holding at most ``size`` events."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("window size must be positive")
        self.size = size
        self._events: deque[AddressEvent] = deque()

    def add(self, event: AddressEvent) -> list[AddressEvent]:
        """Add an event and return the events pushed out of the window."""
        self._events.append(event)
        removed = []
        while len(self._events) > self.size:
            removed.append(self._events.popleft())
        return removed

    def __iter__(self) -> Iterator[AddressEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)


@dataclass(frozen=True)
class VergenceUpdate:
    """What one batch of events did to the controller."""

    added: int
    removed: int
    disparity: float
    velocity: float
    responses: tuple[float, ...]


class VergenceController:
    """Estimate stereo disparity with Gabor filters and drive eye vergence."""

    def __init__(
        self,
        width: int = 128,
        height: int = 128,
        n_events: int = 200,
        orientations: int = 1,
        phases: int = 7,
        max_disparity: int = 14,
        stds_per_lambda: float = 6.0,
        threshold: float = 0.0,
        head: VergenceHead | None = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")
        if orientations < 1:
            raise ValueError("at least one orientation is required")
        if phases < 1:
            raise ValueError("at least one phase is required")
        if max_disparity <= 0:
            raise ValueError("max_disparity must be positive")
        if stds_per_lambda <= 0:
            raise ValueError("stds_per_lambda must be positive")

        self.width = width
        self.height = height
        self.winsize = int(max_disparity * 8.0 / 3.0)
        self.orientations = orientations
        # an odd number of phases keeps a zero-disparity filter in the middle
        self.phases = 2 * (phases // 2) + 1
        self.threshold = threshold
        self.kp = 5000.0
        self.kd = 0.0
        self.head = head
        self.verging = False
        self._error_prev = 0.0

        sigma = max_disparity * 8.0 / (stds_per_lambda * 3.0)
        min_angle = math.pi / 4
        max_angle = 3 * math.pi / 4
        middle = (self.phases - 1) // 2

        self.filters: list[GaborFilter] = []
        self.weights: list[float] = []
        for i in range(orientations):
            if orientations == 1:
                theta = 0.0
            else:
                theta = min_angle + i * (max_angle - min_angle) / (orientations - 1)
            for j in range(self.phases):
                if self.phases == 1:
                    disparity = 0
                else:
                    disparity = int(
                        -max_disparity + j * max_disparity * 2.0 / (self.phases - 1) + 0.5
                    )
                gabor = GaborFilter()
                gabor.set_center(width // 2, height // 2)
                gabor.set_parameters(sigma, stds_per_lambda, theta, disparity)
                self.filters.append(gabor)
                if j < middle:
                    self.weights.append(1.0)
                elif j == middle:
                    self.weights.append(0.0)
                else:
                    self.weights.append(-1.0)

        self.left_window = FixedWindow(n_events)
        self.right_window = FixedWindow(n_events)

        if head is not None:
            head.set_control_mode(VERGENCE_JOINT, ControlMode.VELOCITY)

    def _in_window(self, event: AddressEvent) -> bool:
        half = self.winsize // 2
        return (
            abs(event.x - self.width // 2) <= half
            and abs(event.y - self.height // 2) <= half
        )

    def process(self, events: Iterable[AddressEvent]) -> VergenceUpdate:
        """Feed a batch of events, update the filters and command the head."""
        added = 0
        removed_count = 0
        for event in events:
            if not self._in_window(event):
                continue
            window = self.left_window if event.channel else self.right_window
            removed = window.add(event)
            added += 1
            removed_count += len(removed)
            for gabor in self.filters:
                gabor.process(event)
                gabor.process_all(removed, -1.0)

        weighted = 0.0
        total = 0.0
        for gabor, weight in zip(self.filters, self.weights):
            response = gabor.response()
            if response > self.threshold:
                weighted += weight * response
                total += response
        disparity = weighted / (len(self.filters) * total) if total else 0.0

        velocity = 0.0
        if self.head is not None and self.verging:
            vergence = self.head.encoders()[VERGENCE_JOINT]
            if vergence > MAX_VERGENCE and disparity > 0.0:
                disparity = 0.0
            if vergence < MIN_VERGENCE and disparity < 0.0:
                disparity = 0.0
            error_d = disparity - self._error_prev
            self._error_prev = disparity
            velocity = disparity * self.kp + error_d * self.kd
            self.head.velocity_move(VERGENCE_JOINT, velocity)

        return VergenceUpdate(
            added=added,
            removed=removed_count,
            disparity=disparity,
            velocity=velocity,
            responses=tuple(self.filter_responses()),
        )

    def filter_responses(self) -> list[float]:
        """Return every filter's response, with non-positive ones as zero."""
        return [max(gabor.response(), 0.0) if gabor.response() > 0 else 0.0
                for gabor in self.filters]

    def start_verging(self) -> None:
        """Begin sending velocity commands to the vergence joint."""
        self.verging = True
        if self.head is not None:
            self.head.set_control_mode(VERGENCE_JOINT, ControlMode.VELOCITY)

    def reset_vergence(self) -> None:
        """Stop verging and return the vergence joint to its rest position."""
        self.verging = False
        if self.head is not None:
            self.head.set_control_mode(VERGENCE_JOINT, ControlMode.POSITION)
            self.head.position_move(VERGENCE_JOINT, RESET_VERGENCE)

    def respond(self, command: str | Sequence) -> str:
        """Handle a control command and return the reply text."""
        words = command.split() if isinstance(command, str) else list(command)
        if not words:
            return ""
        name = str(words[0])
        if name == "start":
            self.start_verging()
            return "Starting Verging..."
        if name == "reset":
            self.reset_vergence()
            return "Resetting..."
        if name in ("kp", "kd"):
            if len(words) < 2:
                raise ValueError(f"{name} needs a value")
            setattr(self, name, float(words[1]))
            return f"Setting {name}..."
        return ""

    def debug_image(self) -> np.ndarray:
        """Draw both event windows into a BGR image of shape (width, height, 3)."""
        image = np.zeros((self.width, self.height, 3), dtype=np.uint8)
        for window, colour in (
            (self.left_window, LEFT_COLOUR),
            (self.right_window, RIGHT_COLOUR),
        ):
            for event in window:
                column = self.width // 2 - event.x + self.winsize
                row = self.height // 2 - event.y + self.winsize
                if 0 <= row < image.shape[0] and 0 <= column < image.shape[1]:
                    image[row, column] = colour
        return image