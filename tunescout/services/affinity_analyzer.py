"""Affinity analyzer -- what does this listener gravitate towards?

Turns the newest-first play history and liked tracks into:

* an artist -> weight map where the record at rank ``i`` contributes
  ``exp(-i / tau)``; likes are multiplied by ``like_multiplier`` because a
  like is a stronger statement of intent than a play;
* the top-K artists by weight, used by the artist-affinity and
  trending-alignment sources;
* coarse genre hints from substring matches against the fixed genre
  vocabulary in :mod:`tunescout.config.taxonomy`.

This is a heuristic, not a classifier.  It never fails: empty input gives
an empty profile, which downstream stages treat as a cold start.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from tunescout.config.engine import EngineConfig
from tunescout.config.taxonomy import GENRE_KEYWORDS
from tunescout.models.recommendation import AffinityProfile, TrackRef
from tunescout.models.tracks import LikedTrack, PlaybackEvent
from tunescout.utils.logging import get_logger
from tunescout.utils.text_normalizer import track_text

_GENRE_ORDER = {genre: position for position, genre in enumerate(GENRE_KEYWORDS)}


class AffinityAnalyzer:
    """Computes a per-run :class:`AffinityProfile` from listener signals."""

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._logger = get_logger(__name__)

    def decay(self, rank: int) -> float:
        """Weight contributed by the record at 0-indexed *rank* (newest first)."""
        return math.exp(-rank / self._config.decay_tau)

    def analyze(
        self,
        plays: Sequence[PlaybackEvent],
        likes: Sequence[LikedTrack],
    ) -> AffinityProfile:
        """Build the profile for one pipeline run.

        Both inputs must already be sorted newest first, as the signal store
        returns them.
        """
        weights: dict[str, float] = {}
        genre_scores: dict[str, float] = {}
        genre_hits: dict[str, int] = {}

        def _accumulate(rank: int, title: str, artist: str, multiplier: float) -> None:
            contribution = self.decay(rank) * multiplier
            if artist:
                weights[artist] = weights.get(artist, 0.0) + contribution
            text = track_text(title, artist)
            for genre, keywords in GENRE_KEYWORDS.items():
                hits = sum(1 for keyword in keywords if keyword in text)
                if hits:
                    genre_hits[genre] = genre_hits.get(genre, 0) + hits
                    genre_scores[genre] = genre_scores.get(genre, 0.0) + hits * contribution

        for rank, play in enumerate(plays):
            _accumulate(rank, play.title, play.artist, 1.0)
        for rank, like in enumerate(likes):
            _accumulate(rank, like.title, like.artist, self._config.like_multiplier)

        # Stable sort: equal weights keep first-seen order, so newer records win.
        top_artists = [
            artist
            for artist, _ in sorted(weights.items(), key=lambda item: item[1], reverse=True)
        ][: self._config.top_artist_count]

        ranked_genres = sorted(
            genre_scores,
            key=lambda genre: (-genre_scores[genre], -genre_hits[genre], _GENRE_ORDER[genre]),
        )
        top_genres = ranked_genres[: self._config.top_genre_count]

        profile = AffinityProfile(
            artist_weights=weights,
            top_artists=top_artists,
            top_genres=top_genres,
            genre_hits=genre_hits,
            liked_sample=[
                TrackRef(track_id=like.track_id, title=like.title, artist=like.artist)
                for like in likes[: self._config.oracle_liked_sample]
            ],
            recent_sample=[
                TrackRef(track_id=play.track_id, title=play.title, artist=play.artist)
                for play in plays[: self._config.oracle_recent_sample]
            ],
        )
        self._logger.debug(
            "affinity_computed",
            plays=len(plays),
            likes=len(likes),
            artists=len(weights),
            top_artists=top_artists[:5],
            top_genres=top_genres,
        )
        return profile
