"""Spatial index exceptions and warnings."""


class SpatialIndexError(Exception):
    """Base exception for spatial index operations."""

    pass


class EmptyInputError(SpatialIndexError):
    """An index was requested for zero points."""

    pass


class InvalidKError(SpatialIndexError):
    """The requested neighbor count is not a positive integer."""

    pass


class DimensionMismatchError(SpatialIndexError):
    """Query dimensionality differs from the indexed points."""

    pass


class NonFiniteInputError(SpatialIndexError):
    """Input contains NaN or infinite coordinates."""

    pass


class IndexNotPublishedError(SpatialIndexError):
    """A handle was read before any tree was published to it."""

    pass


class UnbalancedTreeWarning(UserWarning):
    """Duplicate coordinates pushed the tree far beyond logarithmic depth."""

    pass
