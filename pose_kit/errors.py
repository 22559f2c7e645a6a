class PostprocessError(ValueError):
    """
    Base class for caller contract violations detected during post-processing.
    """


class ShapeError(PostprocessError):
    """Tensor rank, batch or channel arithmetic does not match the pose layout."""


class DegenerateSizeError(PostprocessError):
    """A model input or target frame size has a zero (or negative) dimension."""
