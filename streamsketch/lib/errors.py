class InvalidParameterError(ValueError):
    """Raised when a sketch is constructed with parameters it cannot honour.

    Raised before any table is allocated, so a failed construction leaves
    nothing behind.
    """
    pass
