"""Exception hierarchy for flightwatch."""

from __future__ import annotations


class FlightwatchError(Exception):
    """Base class for all flightwatch errors."""


class ProviderError(FlightwatchError):
    """The flight-data provider failed (transport, HTTP status or malformed body)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FlightNotTrackableError(FlightwatchError):
    """No usable record exists for a flight number and date."""

    def __init__(self, flight_number: str, date: str, reason: str = "not found"):
        super().__init__(f"Flight {flight_number} on {date} is not trackable: {reason}")
        self.flight_number = flight_number
        self.date = date
        self.reason = reason


class NotificationError(FlightwatchError):
    """A message could not be delivered to a recipient."""
