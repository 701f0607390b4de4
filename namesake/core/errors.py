"""Error taxonomy for name analysis.

Request-level errors (InvalidInput, TooManyCombinations,
AllProvidersUnavailable) propagate out of analyze(). ProviderError is
per-part: the aggregator absorbs it and degrades that part's result.
"""


class NamesakeError(Exception):
    """Base class for all namesake errors."""


class InvalidInput(NamesakeError, ValueError):
    """Input lists cannot produce any combination (empty first names, bad last name)."""


class TooManyCombinations(NamesakeError):
    """Expansion would exceed the configured combination cap."""

    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(
            f"{count} combinations requested, limit is {limit}. "
            f"Narrow the first or middle name lists."
        )


class ProviderError(NamesakeError):
    """A single name-part lookup failed (network, timeout, malformed response)."""

    def __init__(self, provider: str, cause: BaseException | str | None = None):
        self.provider = provider
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if isinstance(cause, BaseException) else cause
        super().__init__(f"[{provider}] lookup failed" + (f": {detail}" if detail else ""))


class AllProvidersUnavailable(NamesakeError):
    """Every distinct name part failed lookup."""

    def __init__(self, parts: list[str]):
        self.parts = parts
        super().__init__(
            f"No provider could resolve any of {len(parts)} name part(s): "
            f"{', '.join(parts)}"
        )
