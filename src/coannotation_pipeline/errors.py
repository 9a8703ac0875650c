"""Error kinds raised by the co-annotation core."""


class InvalidInputError(ValueError):
    """Malformed input table or unsupported parameter value."""


class EmptyResultError(ValueError):
    """Degenerate input yielding zero candidate genes or zero pairs.

    Not necessarily fatal: callers may treat it as an empty success.
    """
