"""
Frame Enhancer Errors

Typed failures reported to callers. None of them is retried by the engine.
"""


class EnhancementError(Exception):
    """Base class for every failure raised by the enhancement engine."""


class InvalidDimensions(EnhancementError):
    """Buffer length does not match width x height x 4, or a side is not positive."""

    def __init__(self, width, height, length):
        self.width = width
        self.height = height
        self.length = length
        super().__init__(
            f"invalid dimensions {width}x{height} for buffer of {length} bytes"
        )


class UnknownProfile(EnhancementError):
    """An explicit profile name that is not one of the recognised profiles."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"unknown enhancement profile: {name!r}")


class StageFailure(EnhancementError):
    """A stage produced malformed output (wrong shape, non-finite values)."""

    def __init__(self, message: str, stage: str = None):
        self.stage = stage
        self.detail = message
        if stage:
            message = f"{stage}: {message}"
        super().__init__(message)
