"""FlightAware AeroAPI v4 client."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import requests

from flightwatch.errors import ProviderError
from flightwatch.fetch.airlines import alternate_ident, normalize_flight_number
from flightwatch.fetch.normalize import select_flight_for_date, to_snapshot
from flightwatch.models import FlightSnapshot
from flightwatch.schedule.planner import next_day

logger = logging.getLogger(__name__)

AEROAPI_URL = "https://aeroapi.flightaware.com/aeroapi"


class AeroApiClient:
    """Fetch flight status records from AeroAPI.

    Only an API key is needed (``x-apikey`` header). Lookups by flight
    number retry with the ICAO carrier form when the IATA form is unknown.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = AEROAPI_URL,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key or os.environ.get("FLIGHTAWARE_API_KEY", "")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """GET a JSON document; None on 404."""
        if not self.api_key:
            raise ProviderError("FlightAware API key not configured")
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(
                url,
                params=params,
                headers={"x-apikey": self.api_key, "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"AeroAPI request failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise ProviderError(
                f"AeroAPI error: {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            ) from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError("AeroAPI returned a malformed body") from exc

    def fetch_flights(
        self, ident: str, start: str | None = None, end: str | None = None
    ) -> list[dict[str, Any]]:
        """All records for an identifier, optionally within ``[start, end)`` dates."""
        params = {}
        if start:
            params["start"] = start
        if end:
            params["end"] = end
        logger.info("Fetching AeroAPI flights for %s (%s..%s)", ident, start, end)
        data = self._get(f"/flights/{quote(ident, safe='')}", params=params or None)
        if not data:
            return []
        return list(data.get("flights") or [])

    def fetch_by_id(self, fa_flight_id: str) -> dict[str, Any] | None:
        """The record for a provider tracking id, or None."""
        flights = self.fetch_flights(fa_flight_id)
        return flights[0] if flights else None

    def lookup(self, flight_number: str, date: str) -> dict[str, Any] | None:
        """Record for a flight number departing on ``date``.

        Tries the number as given, then its ICAO-carrier alternate.
        """
        ident = normalize_flight_number(flight_number)
        candidates = [ident]
        alternate = alternate_ident(ident)
        if alternate and alternate != ident:
            candidates.append(alternate)

        for candidate in candidates:
            flights = self.fetch_flights(candidate, start=date, end=next_day(date))
            if flights:
                if candidate != ident:
                    logger.info("Found %s via alternate ident %s", flight_number, candidate)
                return dict(select_flight_for_date(flights, date))
        logger.warning("No AeroAPI record for %s on %s", flight_number, date)
        return None

    # --- Snapshot-level helpers used by the monitor ---

    def get_snapshot(
        self,
        flight_number: str,
        date: str,
        fa_flight_id: str | None = None,
    ) -> FlightSnapshot | None:
        """Fetch and normalize; by tracking id when known, else by number and date."""
        record = self.fetch_by_id(fa_flight_id) if fa_flight_id else None
        if record is None:
            record = self.lookup(flight_number, date)
        if record is None:
            return None
        return to_snapshot(record, flight_number, date, fetched_at=datetime.now(timezone.utc))

    def get_snapshot_by_id(self, fa_flight_id: str) -> FlightSnapshot | None:
        """Snapshot for a record known only by tracking id (inbound legs)."""
        record = self.fetch_by_id(fa_flight_id)
        if record is None:
            return None
        ident = record.get("ident_iata") or record.get("ident") or fa_flight_id
        scheduled = record.get("scheduled_out") or ""
        return to_snapshot(
            record, ident, scheduled[:10], fetched_at=datetime.now(timezone.utc)
        )
