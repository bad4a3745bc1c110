"""
Error types raised by the spam classifier core.

The core raises these; ml.spam_detector.SpamDetector turns them into
structured status/message results for callers.
"""


class SpamModelError(Exception):
    """Base class for every error raised by the classifier."""


class ConfigurationError(SpamModelError, ValueError):
    """Invalid training configuration (layer sizes, activation, learning rate, epochs)."""


class InvalidArchitecture(ConfigurationError):
    """Hidden layer sizes are empty or contain a non-positive value."""


class DatasetError(SpamModelError):
    """Dataset is missing, unreadable, empty, or structurally invalid."""


class InputSizeMismatchError(SpamModelError, ValueError):
    """Feature vector length differs from the network's input size."""

    def __init__(self, expected, received):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Incorrect feature vector size. Expected {expected}, received {received}"
        )


class InvalidSaveState(SpamModelError):
    """A save was requested before any model was trained."""


class ModelLoadError(SpamModelError):
    """The stored pretrained model is corrupt or does not describe a valid network."""
