from __future__ import annotations

import asyncio
from typing import Any, Optional

import aiohttp
import pytest

from wordchain.exceptions import OracleError, OracleUnavailableError
from wordchain.oracle import RandomWord, WordLookup, WordOracle

BASE = "https://kbbi.example/kbbi"


class StubResponse:
    def __init__(self, status: int, payload: Any = None, bad_json: bool = False):
        self.status = status
        self.payload = payload
        self.bad_json = bad_json

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        if self.bad_json:
            raise ValueError("not json")
        return self.payload

    async def __aenter__(self) -> "StubResponse":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class StubSession:
    """Just enough of aiohttp.ClientSession for WordOracle."""

    def __init__(self, response: Optional[StubResponse] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.urls: list[str] = []
        self.closed = False

    def get(self, url: str, timeout: Any = None) -> StubResponse:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


def make_oracle(response: Optional[StubResponse] = None, error: Optional[Exception] = None) -> tuple[WordOracle, StubSession]:
    session = StubSession(response, error)
    return WordOracle(BASE + "/", timeout=1, session=session), session


class TestLookup:
    @pytest.mark.asyncio
    async def test_valid_word(self) -> None:
        oracle, session = make_oracle(StubResponse(200, {"lemma": "main", "wordPoints": 9}))

        result = await oracle.lookup(" Bermain ")

        assert result == WordLookup(valid=True, canonical_form="main", point_value=9)
        assert session.urls == [f"{BASE}/bermain"]

    @pytest.mark.asyncio
    async def test_word_is_url_quoted(self) -> None:
        oracle, session = make_oracle(StubResponse(404))
        await oracle.lookup("a/b c")
        assert session.urls == [f"{BASE}/a%2Fb%20c"]

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        oracle, _ = make_oracle(StubResponse(404, {"error": "Not found"}))
        assert await oracle.lookup("xyz") == WordLookup(valid=False)

    @pytest.mark.asyncio
    async def test_error_payload_means_invalid(self) -> None:
        oracle, _ = make_oracle(StubResponse(200, {"error": "Kata tidak ditemukan"}))
        assert not (await oracle.lookup("xyz")).valid

    @pytest.mark.asyncio
    async def test_blank_word_skips_request(self) -> None:
        oracle, session = make_oracle(StubResponse(200, {"lemma": "x"}))
        assert not (await oracle.lookup("   ")).valid
        assert session.urls == []

    @pytest.mark.asyncio
    async def test_bad_points_are_ignored(self) -> None:
        oracle, _ = make_oracle(StubResponse(200, {"lemma": "main", "wordPoints": True}))
        assert (await oracle.lookup("main")).point_value is None

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        oracle, _ = make_oracle(StubResponse(500))
        with pytest.raises(OracleError) as exc_info:
            await oracle.lookup("main")
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_malformed_body(self) -> None:
        oracle, _ = make_oracle(StubResponse(200, bad_json=True))
        with pytest.raises(OracleError):
            await oracle.lookup("main")

    @pytest.mark.asyncio
    async def test_network_failure(self) -> None:
        oracle, _ = make_oracle(error=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(OracleUnavailableError):
            await oracle.lookup("main")

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        oracle, _ = make_oracle(error=asyncio.TimeoutError())
        with pytest.raises(OracleUnavailableError):
            await oracle.lookup("main")


class TestRandomWord:
    @pytest.mark.asyncio
    async def test_random_word(self) -> None:
        oracle, session = make_oracle(StubResponse(200, {"lemma": "makan", "wordPoints": 5}))

        assert await oracle.random_word() == RandomWord(word="makan", point_value=5)
        assert session.urls == [f"{BASE}/_random"]

    @pytest.mark.parametrize("payload", [{}, {"lemma": "  "}, {"error": "oops"}, ["makan"]])
    @pytest.mark.asyncio
    async def test_missing_word(self, payload: Any) -> None:
        oracle, _ = make_oracle(StubResponse(200, payload))
        with pytest.raises(OracleError):
            await oracle.random_word()

    @pytest.mark.asyncio
    async def test_bad_status(self) -> None:
        oracle, _ = make_oracle(StubResponse(503))
        with pytest.raises(OracleError):
            await oracle.random_word()


class TestSessionOwnership:
    @pytest.mark.asyncio
    async def test_injected_session_is_left_open(self) -> None:
        oracle, session = make_oracle(StubResponse(404))
        async with oracle:
            await oracle.lookup("main")
        assert not session.closed
