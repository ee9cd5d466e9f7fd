"""Seed parsing and hashing for command line use."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import re

from random_terrain.rng import U32_LIMIT

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_EXAMPLE_SEEDS = ["42", "3735928559", "MistyForge", "north-coast"]


class SeedParseError(ValueError):
    """Raised when a seed is neither a u32 nor a usable name."""


@dataclass(frozen=True)
class ParsedSeed:
    """Validated seed text and the 32-bit seed it stands for."""

    original: str
    canonical: str
    seed: int


def seed_hash32(name: str) -> int:
    """Hash a canonical seed name to a deterministic unsigned 32-bit integer."""

    digest = hashlib.blake2b(
        name.encode("ascii", errors="strict"),
        digest_size=4,
        person=b"terrainseed",
    ).digest()
    return int.from_bytes(digest, byteorder="big", signed=False)


def parse_seed(seed_text: str) -> ParsedSeed:
    """Parse a decimal u32 seed, or hash a name such as `MistyForge` case-insensitively."""

    if seed_text is None:
        raise SeedParseError(_error_message("Seed is required."))

    raw = seed_text.strip()
    if not raw:
        raise SeedParseError(_error_message("Seed cannot be empty."))

    if raw.isascii() and raw.isdigit():
        value = int(raw)
        if value >= U32_LIMIT:
            raise SeedParseError(_error_message(f"Numeric seed must be below {U32_LIMIT}."))
        return ParsedSeed(raw, str(value), value)

    if not _NAME_RE.fullmatch(raw):
        raise SeedParseError(
            _error_message("Seed names may contain letters, digits, '-' and '_' only.")
        )

    canonical = raw.lower()
    return ParsedSeed(raw, canonical, seed_hash32(canonical))


def _error_message(reason: str) -> str:
    examples = ", ".join(_EXAMPLE_SEEDS)
    return f"{reason} Examples: {examples}"
