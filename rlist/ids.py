"""
Identifier generation for reading-list entries.

Generated identifiers are content-addressed: the same URL added on the
same day always yields the same identifier, so a repeated add collides
in the store instead of creating a silent duplicate.
"""

import hashlib
import string
from datetime import date
from typing import Optional, Protocol

from .types import validate_identifier

IDENTIFIER_LENGTH = 8

_BASE36 = string.digits + string.ascii_lowercase


class RandomSource(Protocol):
    def getrandbits(self, k: int) -> int: ...


def _base36(number: int) -> str:
    if number == 0:
        return _BASE36[0]
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def derive_identifier(url: str, date_added: date, salt: str = "") -> str:
    """
    Derive a short identifier from an entry's URL and date.

    SHA-256 of ``url|YYYY-MM-DD`` (plus optional salt), rendered in base36
    and cut to IDENTIFIER_LENGTH characters.
    """
    material = f"{url}|{date_added.isoformat()}"
    if salt:
        material += f"|{salt}"
    digest = hashlib.sha256(material.encode("utf-8")).digest()
    encoded = _base36(int.from_bytes(digest, "big"))
    return encoded.rjust(IDENTIFIER_LENGTH, _BASE36[0])[:IDENTIFIER_LENGTH]


class IdentifierGenerator:
    """
    Produces identifiers for new entries.

    Without a random source the output is fully deterministic. With one
    (e.g. a seeded ``random.Random``), a salt drawn from it is mixed in so
    the same URL can be added twice on one day under different identifiers.
    """

    def __init__(self, random_source: Optional[RandomSource] = None):
        self._random = random_source

    def generate(self, url: str, date_added: date, candidate: Optional[str] = None) -> str:
        if candidate is not None:
            return validate_identifier(candidate)
        salt = ""
        if self._random is not None:
            salt = f"{self._random.getrandbits(64):016x}"
        return derive_identifier(url, date_added, salt)
