"""
Unit tests for ticket token generation.
"""

import re
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from washq.constants import TOKEN_ALPHABET
from washq.core.tokens import (
    fallback_token,
    generate_token_number,
    random_suffix,
    to_base36,
)

TOKEN_PATTERN = re.compile(r"^[0-9]{8}-[A-Z2-9]{6}$")


class StubJobs:
    """Job lookups backed by a set of taken tokens."""

    def __init__(self, taken=None, always_taken: bool = False):
        self.taken = set(taken or [])
        self.always_taken = always_taken
        self.lookups: list[str] = []

    async def find_by_token(self, tenant_id, token_number):
        self.lookups.append(token_number)
        if self.always_taken or token_number in self.taken:
            return object()
        return None


class TestTokenHelpers:
    def test_random_suffix_uses_alphabet(self):
        suffix = random_suffix()

        assert len(suffix) == 6
        assert all(char in TOKEN_ALPHABET for char in suffix)

    def test_alphabet_excludes_ambiguous_characters(self):
        for char in "0O1I":
            assert char not in TOKEN_ALPHABET

    def test_to_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"
        assert to_base36(1_700_000_000_000) == "LOYW3V28"

    def test_fallback_token_format(self):
        token = fallback_token("20260208", now_ms=1_700_000_000_000)

        assert token.startswith("20260208-3V28")
        assert len(token) == len("20260208-") + 8
        assert all(char in TOKEN_ALPHABET for char in token[-4:])


class TestGenerateTokenNumber:
    """Tests for generate_token_number."""

    async def test_format_and_date(self):
        jobs = StubJobs()
        now = datetime(2026, 2, 8, 23, 59, tzinfo=timezone.utc)

        token = await generate_token_number(jobs, uuid4(), now=now)

        assert TOKEN_PATTERN.match(token)
        assert token.startswith("20260208-")
        assert jobs.lookups == [token]

    async def test_date_prefix_is_utc(self):
        local = timezone(timedelta(hours=5, minutes=30))
        now = datetime(2026, 2, 9, 3, 0, tzinfo=local)

        token = await generate_token_number(StubJobs(), uuid4(), now=now)

        assert token.startswith("20260208-")

    async def test_skips_taken_tokens(self, monkeypatch):
        draws = iter(["AAAAAA", "BBBBBB", "CCCCCC"])
        monkeypatch.setattr("washq.core.tokens.random_suffix", lambda length=6: next(draws))
        now = datetime(2026, 2, 8, tzinfo=timezone.utc)
        jobs = StubJobs(taken={"20260208-AAAAAA", "20260208-BBBBBB"})

        token = await generate_token_number(jobs, uuid4(), now=now)

        assert token == "20260208-CCCCCC"
        assert len(jobs.lookups) == 3

    async def test_falls_back_after_max_draws(self):
        jobs = StubJobs(always_taken=True)
        now = datetime(2026, 2, 8, tzinfo=timezone.utc)

        token = await generate_token_number(jobs, uuid4(), now=now, max_draws=10)

        assert len(jobs.lookups) == 10
        assert token.startswith("20260208-")
        assert len(token.split("-")[1]) == 8

    async def test_tokens_are_distinct_in_practice(self):
        jobs = StubJobs()
        tenant_id = uuid4()

        tokens = set()
        for _ in range(100):
            token = await generate_token_number(jobs, tenant_id)
            jobs.taken.add(token)
            tokens.add(token)

        assert len(tokens) == 100
