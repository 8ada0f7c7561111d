"""Deep-link builders for telephony, FaceTime, WhatsApp and Google Maps.

These are the only places that know the exact URL schemes.  Numbers handed
to messaging and video links are normalised to digits-only international
form (country code prefixed); telephony links keep the number as dialled.
"""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import quote

from src.models.location import Position

_NON_DIGITS: Final = re.compile(r"\D")
_NATIONAL_NUMBER_LENGTH: Final[int] = 10

MESSAGING_BASE_URL: Final[str] = "https://wa.me/"
DIRECTIONS_BASE_URL: Final[str] = "https://www.google.com/maps/dir/"
MAPS_QUERY_BASE_URL: Final[str] = "https://maps.google.com/?q="


def normalise_number(contact: str, country_code: str = "91") -> str:
    """Return ``contact`` as digits with the country code prefixed.

    >>> normalise_number("7219435156")
    '917219435156'
    >>> normalise_number("020-66455100")
    '912066455100'
    >>> normalise_number("+44 20 7946 0958")
    '442079460958'
    """
    stripped = contact.strip()
    digits = _NON_DIGITS.sub("", stripped)

    if stripped.startswith("+"):
        return digits
    if digits.startswith("00"):
        return digits[2:]
    if len(digits) == _NATIONAL_NUMBER_LENGTH:
        return country_code + digits
    if digits.startswith("0"):
        # Trunk prefix (e.g. 020-... landlines) is replaced by the country code.
        return country_code + digits.lstrip("0")
    if digits.startswith(country_code) and len(digits) == len(country_code) + _NATIONAL_NUMBER_LENGTH:
        return digits
    return country_code + digits


def telephony_link(contact: str) -> str:
    stripped = contact.strip()
    prefix = "+" if stripped.startswith("+") else ""
    return f"tel:{prefix}{_NON_DIGITS.sub('', stripped)}"


def facetime_link(contact: str, country_code: str = "91") -> str:
    return f"facetime:{normalise_number(contact, country_code)}"


def messaging_link(contact: str, message: str | None = None, country_code: str = "91") -> str:
    url = f"{MESSAGING_BASE_URL}{normalise_number(contact, country_code)}"
    if message:
        url += f"?text={quote(message, safe='')}"
    return url


def directions_link(origin: Position, destination: Position) -> str:
    return f"{DIRECTIONS_BASE_URL}{origin.coordinates}/{destination.coordinates}"


def location_share_url(position: Position) -> str:
    return f"{MAPS_QUERY_BASE_URL}{position.coordinates}"
