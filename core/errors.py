"""
Error taxonomy for the fingerspelling inference core.

Load-time errors (ShapeMismatch, ArtifactFormatError) are fatal and carry the
name of the field that failed. MalformedFrame is the only per-frame,
recoverable error; the FramePredictor absorbs it.
"""


class InferenceError(Exception):
    """Base class for every error raised by the inference core."""


class ModelNotLoaded(InferenceError):
    """A prediction was requested before a ModelArtifact was loaded."""

    def __init__(self, message="No model artifact loaded; call load() first"):
        super().__init__(message)


class ModelAlreadyLoaded(InferenceError):
    """The predictor is already READY; the load transition happens once."""

    def __init__(self, message="Model artifact already loaded"):
        super().__init__(message)


class ShapeMismatch(InferenceError):
    """Dimensions disagree between a vector, a layer or the artifact."""

    def __init__(self, field, expected, actual, detail=""):
        self.field = field
        self.expected = expected
        self.actual = actual
        message = "%s: expected %s, got %s" % (field, expected, actual)
        if detail:
            message = "%s (%s)" % (message, detail)
        super().__init__(message)


class DegenerateScale(ShapeMismatch):
    """A scaler scale entry is zero, so standardization is undefined."""

    def __init__(self, field, indices):
        self.indices = list(indices)
        super().__init__(
            field, "non-zero scale", "zero at indices %s" % self.indices,
            detail="degenerate normalization",
        )


class ArtifactFormatError(InferenceError):
    """The artifact blob is unreadable, incomplete or holds non-finite values."""

    def __init__(self, field, reason):
        self.field = field
        self.reason = reason
        super().__init__("%s: %s" % (field, reason))


class InvalidClassIndex(InferenceError):
    """A class index outside the decoder's domain reached the LabelDecoder."""

    def __init__(self, index, num_classes):
        self.index = index
        self.num_classes = num_classes
        super().__init__(
            "Class index %r outside [0, %d]" % (index, num_classes - 1)
        )


class MalformedFrame(InferenceError):
    """A landmark frame cannot be turned into a feature vector."""

    def __init__(self, reason):
        self.reason = reason
        super().__init__(reason)
