"""
Small string helpers: random identifiers and URL slugs.

    random_string(10)        → "aZ3_k+Q0pr"
    slugify("Hello, World!") → "hello-world"
"""

import re
import secrets

from .errors import EmptyInput, SlugEmptyResult


RANDOM_STRING_SOURCE = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0987654321_+"

_NOT_SLUG = re.compile(r"[^a-z0-9]+")


def random_string(n: int) -> str:
    """
    Return `n` characters drawn uniformly from RANDOM_STRING_SOURCE.

    Uses the `secrets` module, so the result is fit for file names and
    tokens a client must not be able to guess.
    """
    if n < 0:
        raise ValueError(f"length must be >= 0, got {n}")
    return "".join(secrets.choice(RANDOM_STRING_SOURCE) for _ in range(n))


def slugify(s: str) -> str:
    """
    Turn `s` into a lower-case, dash separated slug.

    Runs of anything outside a-z and 0-9 collapse into one "-", and leading
    or trailing dashes are removed:

        "Now is the time for all GOOD men! + Fish & such &^?123"
            → "now-is-the-time-for-all-good-men-fish-such-123"

    Raises:
        EmptyInput: `s` is empty.
        SlugEmptyResult: nothing usable was left ("こんにちは", "!!!").
    """
    if s == "":
        raise EmptyInput()

    slug = _NOT_SLUG.sub("-", s.lower()).strip("-")
    if not slug:
        raise SlugEmptyResult()
    return slug
