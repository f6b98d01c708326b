"""Exception types raised by the joint slicer."""


class SlicerError(Exception):
    """Base exception for slicer errors."""
    pass


class InvalidParameterError(SlicerError, ValueError):
    """A global print or slicer parameter is out of range."""
    pass


class EmptySkeletonError(SlicerError):
    """A joint has no members or no curves to slice."""
    pass


class PathIndexError(SlicerError, IndexError):
    """PathTree access beyond the stored bounds of a branch."""
    pass


class DegenerateGeometryError(SlicerError):
    """Geometry the kernel cannot intersect or orient (zero length, NaN, zero axes)."""
    pass
