"""Text normalization utilities for track titles and artist credits.

This module handles two distinct concerns:

1. **Artist credit splitting** -- Search and chart services return artist
   credits as one string ("Artist X feat. Artist Y", "A & B", "A, B").
   Diversity caps and affinity lookups work on the *primary* artist, the
   first name in the credit, case-folded.

2. **Fuzzy title matching** -- rapidfuzz ``token_sort_ratio`` detects when
   a search result is just another upload of the seed recording
   ("Song A (Official Video)" vs "Song A").
"""

import re

from rapidfuzz import fuzz

# Separators that join several artists into one credit string.
_ARTIST_SEPARATOR_RE = re.compile(
    r"\s*(?:,|&|\+|/|\bfeaturing\b|\bfeat\b\.?|\bft\b\.?)\s*",
    re.IGNORECASE,
)

# Bracketed decorations that differ between uploads of one recording.
_TITLE_NOISE_RE = re.compile(
    r"[\(\[][^\)\]]*(?:official|video|audio|lyrics?|visuali[sz]er|remaster(?:ed)?|hd|4k)[^\)\]]*[\)\]]",
    re.IGNORECASE,
)


def split_artists(artist_text: str) -> list[str]:
    """Split an artist credit into case-folded individual artist names.

    >>> split_artists("Artist X feat. Artist Y & Z")
    ['artist x', 'artist y', 'z']
    """
    parts = _ARTIST_SEPARATOR_RE.split(artist_text or "")
    return [p.strip().casefold() for p in parts if p and p.strip()]


def primary_artist(artist_text: str) -> str:
    """Return the case-folded first artist of a credit, or ``"unknown"``."""
    artists = split_artists(artist_text)
    return artists[0] if artists else "unknown"


def artist_overlaps(credit: str, artist: str) -> bool:
    """Case-insensitive substring overlap between a credit and an artist name.

    Either direction counts, so "Artist X" matches the credit
    "Artist X feat. Y" and the short credit "X" matches "X".
    """
    a = (credit or "").casefold().strip()
    b = (artist or "").casefold().strip()
    if not a or not b:
        return False
    return b in a or a in b


def clean_title(title: str) -> str:
    """Strip upload decorations and collapse whitespace in a track title."""
    cleaned = _TITLE_NOISE_RE.sub(" ", title or "")
    return re.sub(r"\s+", " ", cleaned).strip()


def titles_match(a: str, b: str, threshold: float = 0.9) -> bool:
    """Return ``True`` when two titles very likely name the same recording."""
    left = clean_title(a).casefold()
    right = clean_title(b).casefold()
    if not left or not right:
        return False
    return fuzz.token_sort_ratio(left, right) >= threshold * 100


def track_text(title: str, artist: str) -> str:
    """Lowercased ``"title artist"`` haystack used for keyword matching."""
    return f"{title or ''} {artist or ''}".lower()
