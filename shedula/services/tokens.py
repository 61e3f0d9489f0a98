"""Booking token generation ("A042": one letter, three digits)."""

import logging
import random
import re
import string
from typing import Iterable

from shedula.core.exceptions import TokenSpaceExhausted

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"^[A-Z]-?\d{3}$")


def generate_token(rng: random.Random = None) -> str:
    """One uniformly chosen uppercase letter followed by a zero-padded 000-999."""
    rng = rng or random
    return f"{rng.choice(string.ascii_uppercase)}{rng.randint(0, 999):03d}"


def generate_unique_token(
    taken: Iterable[str],
    doctor_id: str,
    max_attempts: int,
    rng: random.Random = None,
) -> str:
    """Generate a token not present in ``taken``, retrying a bounded number of times."""
    taken = set(taken)
    for attempt in range(1, max_attempts + 1):
        token = generate_token(rng)
        if token not in taken:
            if attempt > 1:
                logger.info("Token %s for doctor %s issued after %d attempts", token, doctor_id, attempt)
            return token
        logger.warning("Token collision for doctor %s: %s (attempt %d/%d)", doctor_id, token, attempt, max_attempts)

    logger.error("Token generation exhausted for doctor %s after %d attempts", doctor_id, max_attempts)
    raise TokenSpaceExhausted(doctor_id, max_attempts)


def is_valid_token(token: str) -> bool:
    return bool(TOKEN_PATTERN.match(token or ""))
