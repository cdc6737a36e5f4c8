"""
Exception hierarchy for the counting system.

Contract violations (bad frames) fail fast. Detector availability problems
are recoverable: the worker stops feeding frames until the detector is
reinitialized.
"""


class CounterError(Exception):
    """Base class for counting system errors."""


class FrameFormatError(CounterError, ValueError):
    """Raised when a frame buffer does not match its declared dimensions."""


class DetectorUnavailableError(CounterError):
    """Raised when the generic detector is missing, unloaded or failed to load."""


class ConfigValidationError(CounterError):
    """Raised when config validation fails."""
