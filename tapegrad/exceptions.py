"""Errors raised at the tapegrad call boundary."""


class TapegradError(Exception):
    """Base class for all tapegrad errors."""


class DimensionMismatchError(TapegradError, ValueError):
    """
    Raised when a sequence does not have the length an operation requires,
    e.g. a Neuron fed a different number of inputs than it has weights.

    Attributes:
        expected (int): The required length
        actual (int): The length that was received
    """

    def __init__(self, expected: int, actual: int, what: str = 'inputs'):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} {what}, got {actual}")


class EmptyBatchError(TapegradError, ValueError):
    """Raised when a batch loss is requested over zero examples."""

    def __init__(self):
        super().__init__("cannot compute the mean loss of an empty batch")
