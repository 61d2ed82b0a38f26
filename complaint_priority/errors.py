"""Failure taxonomy for the priority scorer.

None of these ever reach the complaint submission flow: the prediction
service turns every ``PriorityError`` into the fallback result.
"""


class PriorityError(Exception):
    """Base class for scorer failures that degrade to the fallback result."""


class DatasetError(PriorityError):
    """Training data is missing, unreadable or has no usable rows."""


class EncodingError(PriorityError):
    """Payload is missing category/description or encodes to NaN."""


class ModelInferenceError(PriorityError):
    """Numeric failure during the forward pass."""


class TrainingError(PriorityError):
    """Numeric failure while fitting the network."""


class TrainingTimeoutError(PriorityError):
    """Training did not finish within the configured wait."""


__all__ = [
    "PriorityError",
    "DatasetError",
    "EncodingError",
    "ModelInferenceError",
    "TrainingError",
    "TrainingTimeoutError",
]
