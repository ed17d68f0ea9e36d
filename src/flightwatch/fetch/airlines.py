"""Carrier code handling for flight identifiers.

Travelers type IATA flight numbers ("KL880") but the provider sometimes only
indexes the ICAO form ("KLM880"). ``alternate_ident`` gives the second form
to retry with.
"""

from __future__ import annotations

import re

IATA_TO_ICAO: dict[str, str] = {
    "AA": "AAL", "UA": "UAL", "DL": "DAL", "WN": "SWA", "BA": "BAW",
    "AF": "AFR", "KL": "KLM", "LH": "DLH", "JL": "JAL", "NH": "ANA",
    "QF": "QFA", "SQ": "SIA", "CX": "CPA", "EK": "UAE", "EY": "ETD",
    "QR": "QTR", "TK": "THY", "SK": "SAS", "TP": "TAP", "IB": "IBE",
    "AC": "ACA", "NZ": "ANZ", "VS": "VIR", "U2": "EZY", "FR": "RYR",
    "AI": "AIC", "CI": "CAL", "BR": "EVA", "OZ": "AAR", "KE": "KAL",
    "MH": "MAS", "GA": "GIA", "TG": "THA", "VN": "HVN", "PR": "PAL",
    "6E": "IGO", "UK": "VTI", "SG": "SEJ", "IX": "AXB", "QP": "AKJ",
    "I5": "IAD", "WY": "OMA", "GF": "GFA", "SV": "SVA", "AZ": "ITY",
    "OS": "AUA", "LX": "SWR", "SN": "BEL",
}

_ICAO_FLIGHT = re.compile(r"^([A-Z]{3})[- ]?(\d+)$")
_IATA_FLIGHT = re.compile(r"^([A-Z0-9]{2})[- ]?(\d+)$")


def split_flight_number(flight_number: str) -> tuple[str, str] | None:
    """Split into (carrier code, numeric part). ICAO form is tried first.

    >>> split_flight_number("kl 880")
    ('KL', '880')
    """
    upper = flight_number.upper().strip()
    match = _ICAO_FLIGHT.match(upper) or _IATA_FLIGHT.match(upper)
    if match is None:
        return None
    return match.group(1), match.group(2)


def alternate_ident(flight_number: str) -> str | None:
    """ICAO-carrier form of an IATA flight number, or None if there is none."""
    parts = split_flight_number(flight_number)
    if parts is None:
        return None
    carrier, number = parts
    if len(carrier) != 2:
        return None
    icao = IATA_TO_ICAO.get(carrier)
    if icao is None:
        return None
    return f"{icao}{number}"


def normalize_flight_number(flight_number: str) -> str:
    """Uppercase and drop separators: ``"kl-880"`` -> ``"KL880"``."""
    parts = split_flight_number(flight_number)
    if parts is None:
        return flight_number.upper().strip()
    return "".join(parts)
