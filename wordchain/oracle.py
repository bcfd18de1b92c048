"""KBBI dictionary API integration.

The word oracle answers two questions for the game: "is this a real word?"
(with its dictionary lemma and point value) and "give me any real word".
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from wordchain.constants import KBBI_API_TIMEOUT, KBBI_API_URL, KBBI_RANDOM_PATH
from wordchain.exceptions import OracleError, OracleUnavailableError

logger = logging.getLogger('wordchain_bot')


@dataclass(frozen=True)
class WordLookup:
    """Dictionary verdict for a candidate word."""
    valid: bool
    canonical_form: Optional[str] = None
    point_value: Optional[int] = None


@dataclass(frozen=True)
class RandomWord:
    """A random valid word picked by the dictionary."""
    word: str
    point_value: Optional[int] = None


def _point_value(data: dict) -> Optional[int]:
    points = data.get("wordPoints")
    if isinstance(points, bool) or not isinstance(points, (int, float)):
        return None
    return int(points) if points > 0 else None


class WordOracle:
    """Client for the KBBI word API.

    Owns an aiohttp session unless one is injected; call ``close()`` (or use
    ``async with``) when done.
    """

    def __init__(
        self,
        base_url: str = KBBI_API_URL,
        timeout: float = KBBI_API_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "WordOracle":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get(self, path: str) -> tuple[int, Any]:
        """GET ``{base_url}/{path}`` and return (status, decoded JSON or None)."""
        url = f"{self.base_url}/{quote(path, safe='')}"
        try:
            async with self._get_session().get(url, timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
                return response.status, data
        except asyncio.TimeoutError as e:
            logger.warning(f"Timeout calling KBBI API {path}")
            raise OracleUnavailableError("KBBI API timed out") from e
        except aiohttp.ClientError as e:
            logger.error(f"HTTP error calling KBBI API {path}: {e}")
            raise OracleUnavailableError(f"Could not reach KBBI API: {e}") from e

    async def lookup(self, word: str) -> WordLookup:
        """Check a word against the dictionary.

        A 404 or an error payload means "not a word" and is not an error.

        Raises:
            OracleError: unexpected status or malformed payload
            OracleUnavailableError: network failure or timeout
        """
        candidate = (word or "").strip().lower()
        if not candidate:
            return WordLookup(valid=False)

        status, data = await self._get(candidate)

        if status == 404:
            logger.debug(f"KBBI lookup: {candidate!r} not found")
            return WordLookup(valid=False)
        if status != 200:
            logger.warning(f"KBBI API returned status {status} for {candidate!r}")
            raise OracleError(f"KBBI API returned status {status}", status=status)
        if not isinstance(data, dict):
            raise OracleError("KBBI API returned a malformed response", status=status)
        if data.get("error"):
            return WordLookup(valid=False)

        lemma = data.get("lemma")
        return WordLookup(
            valid=True,
            canonical_form=lemma if isinstance(lemma, str) and lemma.strip() else None,
            point_value=_point_value(data),
        )

    async def random_word(self) -> RandomWord:
        """Fetch a random valid word.

        Raises:
            OracleError: no word in the response
            OracleUnavailableError: network failure or timeout
        """
        status, data = await self._get(KBBI_RANDOM_PATH)

        if status != 200:
            logger.warning(f"KBBI random word returned status {status}")
            raise OracleError(f"KBBI API returned status {status}", status=status)
        if not isinstance(data, dict) or data.get("error"):
            raise OracleError("KBBI API returned no word", status=status)

        lemma = data.get("lemma")
        if not isinstance(lemma, str) or not lemma.strip():
            raise OracleError("KBBI API returned no word", status=status)
        return RandomWord(word=lemma.strip(), point_value=_point_value(data))
