"""Error taxonomy surfaced by the service layer."""


class ForecastError(Exception):
    """Base class for errors the HTTP layer maps to a response."""


class NotFoundError(ForecastError):
    """Referenced record does not exist or belongs to another user."""


class ValidationError(ForecastError):
    """A required field is missing or a value is out of range."""


class UpstreamFeedError(ForecastError):
    """The external transaction feed failed or returned garbage."""
