# app/core/errors.py

from datetime import date


class MetricsError(Exception):
    """Base class for errors raised by the metrics engine."""


class NoDataError(MetricsError):
    """
    No closed production cycle exists for (unit_id, day).

    This is the normal "nothing to report yet" outcome, not a fault.
    """

    def __init__(self, unit_id: str, day: date, message: str = "no production data for this date") -> None:
        self.unit_id = unit_id
        self.day = day
        super().__init__(message)


class StoreFailure(MetricsError):
    """The persistence layer raised while reading or writing metrics."""
