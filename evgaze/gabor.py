"""Event-driven Gabor filters used to estimate binocular disparity."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class AddressEvent:
    """A single address event from one camera of a stereo pair.

    ``channel`` is 0 for the left camera and 1 for the right one.
    """

    x: int
    y: int
    channel: int = 0
    polarity: int = 0
    stamp: int = 0


class GaborFilter:
    """A Gabor filter that accumulates its response event by event.

    Events on the right channel are shifted by the filter's disparity
    before the carrier is evaluated, so a bank of filters with different
    disparities responds most strongly to the matching stereo offset.
    """

    def __init__(self) -> None:
        self.cx = 0
        self.cy = 0
        self.orientation = 0.0
        self.disparity = 0.0
        self.sigma = 0.0
        self.stds_per_lambda = 6.0
        self.complex_gabor = True
        self._update_precalculations()
        self.reset()

    def _update_precalculations(self) -> None:
        self._cos_theta = math.cos(self.orientation)
        self._sin_theta = math.sin(self.orientation)
        if self.sigma > 0:
            self.fspatial = 1.0 / (self.stds_per_lambda * self.sigma)
        else:
            self.fspatial = math.inf
        self._neg2var = -2.0 * self.sigma**2
        self._coeff = 2.0 * math.pi * self.fspatial

    def set_center(self, cx: int, cy: int) -> None:
        """Place the filter centre at pixel (cx, cy)."""
        self.cx = cx
        self.cy = cy

    def set_parameters(
        self,
        sigma: float,
        stds_per_lambda: float,
        orientation: float,
        disparity: float,
    ) -> None:
        """Set the envelope width, wavelength ratio, orientation and disparity."""
        if sigma <= 0:
            raise ValueError("sigma must be positive")
        if stds_per_lambda <= 0:
            raise ValueError("stds_per_lambda must be positive")
        self.sigma = sigma
        self.stds_per_lambda = stds_per_lambda
        self.orientation = orientation
        self.disparity = disparity
        self._update_precalculations()

    def set_complex(self, complex_gabor: bool = True) -> None:
        """Choose between a complex (energy) and a real (even) filter."""
        self.complex_gabor = complex_gabor

    def process(self, event: AddressEvent, gain: float = 1.0) -> None:
        """Add the contribution of one event, scaled by ``gain``."""
        if self.sigma <= 0:
            raise ValueError("filter parameters have not been set")
        dx = event.x - self.cx
        dy = event.y - self.cy
        dx_theta = dx * self._cos_theta + dy * self._sin_theta
        dy_theta = -dx * self._sin_theta + dy * self._cos_theta

        gaussian = math.exp(dy_theta**2 / self._neg2var)
        phase = self._coeff * (dx_theta + self.disparity if event.channel else dx_theta)
        weight = gain * gaussian

        if self.complex_gabor:
            self._even += weight * math.cos(phase)
            self._odd += weight * math.sin(phase)
        else:
            self._real += weight * math.cos(phase)

    def process_all(self, events: Iterable[AddressEvent], gain: float = 1.0) -> None:
        """Add the contribution of every event in ``events``."""
        for event in events:
            self.process(event, gain)

    def response(self) -> float:
        """Return the current response: energy if complex, else the even part."""
        if not self.complex_gabor:
            return self._real
        return math.hypot(self._even, self._odd)

    def reset(self) -> None:
        """Clear the accumulated response."""
        self._real = 0.0
        self._even = 0.0
        self._odd = 0.0