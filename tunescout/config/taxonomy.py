"""Fixed keyword vocabularies used by the heuristic parts of the engine.

Nothing here is learned: the genre vocabulary drives the affinity
analyzer's coarse genre hints, and the mood / tempo / time-of-day lists
drive the smart playlist builder.  Matching is plain substring search over
the lowercased ``"title artist"`` text of a track.

Vocabulary order is significant: when two genres tie on hit count, the one
listed first wins.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Genre hints -- genre name -> substrings that suggest it.
# ---------------------------------------------------------------------------
GENRE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "pop": ("pop", "k-pop", "kpop", "j-pop"),
    "hip hop": ("hip hop", "hip-hop", "rap", "trap", "drill"),
    "r&b": ("r&b", "rnb", "soul"),
    "rock": ("rock", "punk", "grunge", "indie"),
    "metal": ("metal", "metalcore", "hardcore"),
    "electronic": ("edm", "house", "techno", "trance", "dubstep", "electro", "remix"),
    "lofi": ("lofi", "lo-fi", "chillhop", "beats to"),
    "jazz": ("jazz", "swing", "bebop"),
    "classical": ("classical", "symphony", "sonata", "concerto", "piano"),
    "acoustic": ("acoustic", "unplugged", "folk"),
    "latin": ("reggaeton", "latin", "bachata", "salsa", "cumbia"),
    "country": ("country", "bluegrass"),
    "bollywood": ("bollywood", "hindi", "punjabi", "desi"),
    "afrobeats": ("afrobeat", "afrobeats", "amapiano"),
}

# ---------------------------------------------------------------------------
# Smart playlist keyword lists.
# ---------------------------------------------------------------------------
MOOD_KEYWORDS: tuple[str, ...] = (
    "chill", "lofi", "lo-fi", "ambient", "relax", "calm", "sleep", "study",
    "mellow", "soft", "acoustic", "dream", "sad", "love", "slow",
)

TEMPO_KEYWORDS: tuple[str, ...] = (
    "dance", "edm", "party", "club", "remix", "workout", "energy", "boost",
    "rock", "metal", "hip hop", "rap", "trap", "fast", "speed", "pop",
)

TIME_OF_DAY_KEYWORDS: tuple[str, ...] = (
    "night", "midnight", "moon", "late", "sunset", "dusk", "dawn", "morning",
    "sunrise", "evening", "after hours", "drive", "city", "neon",
)
