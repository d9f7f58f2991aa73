"""Exceptions raised by SVD++ training."""


class SVDPlusPlusError(ValueError):
    """Base class for every error raised while building or training the model."""


class EmptyInputError(SVDPlusPlusError):
    """No rating edges were supplied, so no global mean can be computed."""


class InvalidConfigError(SVDPlusPlusError):
    """Configuration rejected before any computation (rank, bounds, iterations)."""


class DimensionMismatchError(SVDPlusPlusError):
    """A vector whose length differs from the configured rank."""

    def __init__(self, expected: int, actual: int, what: str = "vector"):
        super().__init__(f"{what} has length {actual}, expected {expected}")
        self.expected = expected
        self.actual = actual


class RoleConflictError(SVDPlusPlusError):
    """A vertex id is used both as a user and as an item."""


class UnknownVertexError(SVDPlusPlusError):
    """An edge references a vertex id that has no state in the graph."""
