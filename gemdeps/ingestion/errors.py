"""Error taxonomy for fetching and unpacking gem artifacts."""


class GemDepsError(Exception):
    """Base class for errors raised by gemdeps."""


class FetchError(GemDepsError):
    """An upstream request failed and will not be retried."""


class TransientFetchError(FetchError):
    """Network or server-side failure that may succeed on retry."""


class NotFoundError(FetchError):
    """The gem, its versions, or the requested archive do not exist upstream."""


class ExtractionError(GemDepsError):
    """Neither archive reader could open the gem file."""
