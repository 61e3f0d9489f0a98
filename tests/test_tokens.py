"""Tests for booking token generation."""

import random
import re
import pytest

from shedula.core.exceptions import TokenSpaceExhausted
from shedula.services.tokens import generate_token, generate_unique_token, is_valid_token

TOKEN_RE = re.compile(r"^[A-Z]-?\d{3}$")


def test_generated_tokens_match_format():
    rng = random.Random(7)
    for _ in range(500):
        token = generate_token(rng)
        assert TOKEN_RE.match(token), token


def test_zero_padding():
    class Fixed:
        def choice(self, seq):
            return "B"

        def randint(self, a, b):
            return 7

    assert generate_token(Fixed()) == "B007"


def test_unique_token_skips_taken_values():
    class Sequence:
        def __init__(self):
            self.values = iter([1, 1, 2])

        def choice(self, seq):
            return "A"

        def randint(self, a, b):
            return next(self.values)

    token = generate_unique_token({"A001"}, "dr001", max_attempts=5, rng=Sequence())
    assert token == "A002"


def test_unique_token_gives_up_after_bounded_attempts():
    class Always:
        def choice(self, seq):
            return "Z"

        def randint(self, a, b):
            return 999

    with pytest.raises(TokenSpaceExhausted) as exc:
        generate_unique_token({"Z999"}, "dr001", max_attempts=3, rng=Always())
    assert exc.value.attempts == 3


@pytest.mark.parametrize("token, valid", [
    ("A123", True),
    ("A-123", True),
    ("a123", False),
    ("AB12", False),
    ("A12", False),
    ("", False),
])
def test_is_valid_token(token, valid):
    assert is_valid_token(token) is valid
