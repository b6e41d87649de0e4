class ChargePlannerError(Exception):
    """Base class for charge planner errors."""


class InvalidRequestError(ChargePlannerError, ValueError):
    """A charging request or scenario that cannot be planned."""


class ForecastError(ChargePlannerError, ValueError):
    """A forecast that is not 24 consecutive hourly records."""
