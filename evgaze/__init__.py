"""Vergence, gaze and saccade control logic for event-driven stereo heads."""

__version__ = "0.1.0"

__all__ = ["autosaccade", "control", "gabor", "gaze", "vergence"]