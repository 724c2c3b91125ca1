"""Smart playlist builder.

A sibling of the recommendation pipeline that reads the same signals but
scores against fixed keyword lists instead of personal affinity.

Candidate pool, in order: liked tracks (weight 2), recent plays (1.5),
trending chart (1).  A track seen twice keeps the weight of its first
occurrence but remembers every source it came from.

For each playlist::

    score = source weight + number of playlist keywords found in "title artist"

Playlists that require a keyword match only rank tracks with at least one
hit and none of the playlist's excluded keywords.  Ranked tracks are
stable-sorted by score and taken with a per-artist cap, in three passes:

    1. ranked tracks no earlier playlist used, up to ``smart_max_songs``
    2. ranked tracks an earlier playlist used, up to the floor
    3. padding from the pool in pool order, unused tracks up to the cap
       and then used ones up to the floor

Passes 2 and 3 only run while the playlist is short of its floor
(``smart_min_songs`` unless the playlist sets its own).  The artist mix
works on the tracks of the listener's most played artist only.  Nothing
here is random: the same inputs always give the same playlists.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from tunescout.config.engine import EngineConfig
from tunescout.config.taxonomy import MOOD_KEYWORDS, TEMPO_KEYWORDS, TIME_OF_DAY_KEYWORDS
from tunescout.models.playlist import SmartPlaylist
from tunescout.models.tracks import LikedTrack, PlaybackEvent, TrackResult
from tunescout.utils.logging import get_logger
from tunescout.utils.text_normalizer import primary_artist, split_artists, track_text

SOURCE_LIKED = "liked"
SOURCE_HISTORY = "history"
SOURCE_TRENDING = "trending"

# Artist weights for picking the artist mix's focus.
_FOCUS_LIKE_WEIGHT = 1.8
_FOCUS_PLAY_WEIGHT = 1.0


@dataclass(frozen=True)
class PlaylistDefinition:
    id: str
    name: str
    description: str
    keywords: tuple[str, ...]
    # Restrict the pool to these sources; ``None`` uses every candidate.
    sources: frozenset[str] | None = None
    insight: str = ""
    cold_start_insight: str = ""
    # Only tracks with a keyword hit (and no excluded keyword) are ranked;
    # the rest can still arrive as padding.
    require_keyword_match: bool = False
    excluded_keywords: tuple[str, ...] = ()
    # Limit the playlist to the listener's top artist.  ``focus_name`` and
    # ``focus_insight`` take an ``{artist}`` placeholder.
    focus_artist: bool = False
    focus_name: str = ""
    focus_insight: str = ""
    max_per_artist: int | None = None
    min_songs: int | None = None


PLAYLISTS: tuple[PlaylistDefinition, ...] = (
    PlaylistDefinition(
        id="smart-favorites",
        name="Your Favorites",
        description="Songs you have liked and keep coming back to.",
        keywords=MOOD_KEYWORDS,
        sources=frozenset({SOURCE_LIKED}),
        insight="Built from your likes.",
        cold_start_insight="Popular picks to start your mix.",
    ),
    PlaylistDefinition(
        id="smart-on-repeat",
        name="On Repeat",
        description="Recent listens with a smooth, familiar flow.",
        keywords=TIME_OF_DAY_KEYWORDS,
        sources=frozenset({SOURCE_HISTORY}),
        insight="Focused on your recent plays.",
        cold_start_insight="Popular tracks with smooth pacing.",
    ),
    PlaylistDefinition(
        id="smart-mood-chill",
        name="Chill Vibes",
        description="Laid-back tracks shaped by your taste and mood.",
        keywords=MOOD_KEYWORDS,
        insight="Weighted by your favorite artists.",
        cold_start_insight="Mood-based picks to get started.",
        require_keyword_match=True,
        excluded_keywords=TEMPO_KEYWORDS,
    ),
    PlaylistDefinition(
        id="smart-tempo-energy",
        name="High Energy",
        description="Up-tempo picks to keep you moving and motivated.",
        keywords=TEMPO_KEYWORDS,
        insight="Balanced by energy and your history.",
        cold_start_insight="Energy picks to kick things off.",
        require_keyword_match=True,
        excluded_keywords=MOOD_KEYWORDS,
    ),
    PlaylistDefinition(
        id="smart-time-night",
        name="Night Drive",
        description="After-dark tracks for late sessions and long drives.",
        keywords=TIME_OF_DAY_KEYWORDS,
        insight="Late-night picks from your rotation.",
        cold_start_insight="Night-time picks to get started.",
        require_keyword_match=True,
    ),
    PlaylistDefinition(
        id="smart-artist-mix",
        name="Artist Mix",
        description="A focused artist mix based on who you play most.",
        keywords=TIME_OF_DAY_KEYWORDS,
        insight="Based on your top artists.",
        cold_start_insight="Artist mix to start your taste profile.",
        focus_artist=True,
        focus_name="{artist} Mix",
        focus_insight="Top artist: {artist}",
        max_per_artist=6,
        min_songs=10,
    ),
)


@dataclass
class PoolEntry:
    track: TrackResult
    weight: float
    sources: set[str] = field(default_factory=set)


def _as_track(record: LikedTrack | PlaybackEvent) -> TrackResult:
    return TrackResult(
        track_id=record.track_id,
        title=record.title,
        artist=record.artist,
        thumbnail=record.thumbnail,
        duration_label=record.duration_label,
    )


class SmartPlaylistBuilder:
    """Builds the fixed set of keyword-scored playlists."""

    def __init__(
        self,
        config: EngineConfig,
        definitions: Sequence[PlaylistDefinition] = PLAYLISTS,
    ) -> None:
        self._config = config
        self._definitions = tuple(definitions)
        self._logger = get_logger(__name__)

    def build_pool(
        self,
        likes: Sequence[LikedTrack],
        plays: Sequence[PlaybackEvent],
        trending: Sequence[TrackResult],
    ) -> list[PoolEntry]:
        """Merge the three signal sources into one ordered, deduplicated pool."""
        entries: dict[str, PoolEntry] = {}

        def _push(track: TrackResult, weight: float, source: str) -> None:
            entry = entries.get(track.track_id)
            if entry is None:
                entry = PoolEntry(track=track, weight=weight)
                entries[track.track_id] = entry
            entry.sources.add(source)

        for like in likes:
            _push(_as_track(like), self._config.smart_liked_weight, SOURCE_LIKED)
        for play in plays:
            _push(_as_track(play), self._config.smart_history_weight, SOURCE_HISTORY)
        for track in trending:
            _push(track, self._config.smart_trending_weight, SOURCE_TRENDING)
        return list(entries.values())

    @staticmethod
    def focus_artist(
        likes: Sequence[LikedTrack],
        plays: Sequence[PlaybackEvent],
    ) -> str | None:
        """Case-folded artist the listener likes and plays most, if any.

        Every credited artist counts; ties go to the artist seen first.
        """
        weights: dict[str, float] = {}
        for like in likes:
            for artist in split_artists(like.artist):
                weights[artist] = weights.get(artist, 0.0) + _FOCUS_LIKE_WEIGHT
        for play in plays:
            for artist in split_artists(play.artist):
                weights[artist] = weights.get(artist, 0.0) + _FOCUS_PLAY_WEIGHT
        if not weights:
            return None
        return max(weights, key=weights.__getitem__)

    @staticmethod
    def keyword_hits(track: TrackResult, keywords: Sequence[str]) -> int:
        text = track_text(track.title, track.artist)
        return sum(1 for keyword in keywords if keyword in text)

    def _is_ranked(self, track: TrackResult, definition: PlaylistDefinition) -> bool:
        if not definition.require_keyword_match:
            return True
        if self.keyword_hits(track, definition.excluded_keywords):
            return False
        return self.keyword_hits(track, definition.keywords) > 0

    def build_playlist(
        self,
        definition: PlaylistDefinition,
        pool: Sequence[PoolEntry],
        personalized: bool,
        used_ids: Collection[str] = frozenset(),
        focus_artist: str | None = None,
    ) -> SmartPlaylist:
        name = definition.name
        insight = definition.insight if personalized else definition.cold_start_insight

        base = list(pool)
        if definition.focus_artist and focus_artist:
            base = [e for e in pool if focus_artist in split_artists(e.track.artist)]
            label = focus_artist.title()
            name = definition.focus_name.format(artist=label)
            if personalized:
                insight = definition.focus_insight.format(artist=label)

        scoped = base
        if definition.sources is not None:
            restricted = [e for e in base if e.sources & definition.sources]
            # Nothing from the preferred sources (e.g. no likes yet): use everything.
            if restricted:
                scoped = restricted

        ranked = sorted(
            (e for e in scoped if self._is_ranked(e.track, definition)),
            key=lambda e: e.weight + self.keyword_hits(e.track, definition.keywords),
            reverse=True,
        )

        max_songs = self._config.smart_max_songs
        min_songs = definition.min_songs
        if min_songs is None:
            min_songs = self._config.smart_min_songs
        min_songs = min(min_songs, max_songs)
        max_per_artist = definition.max_per_artist or self._config.smart_max_per_artist
        selected: list[TrackResult] = []
        chosen: set[str] = set()
        artist_counts: dict[str, int] = {}

        def _take(entries: Sequence[PoolEntry], limit: int, reused: bool) -> None:
            for entry in entries:
                if len(selected) >= limit:
                    return
                track = entry.track
                if track.track_id in chosen or (track.track_id in used_ids) != reused:
                    continue
                artist_key = primary_artist(track.artist)
                if artist_counts.get(artist_key, 0) >= max_per_artist:
                    continue
                chosen.add(track.track_id)
                artist_counts[artist_key] = artist_counts.get(artist_key, 0) + 1
                selected.append(track)

        _take(ranked, max_songs, reused=False)
        if len(selected) < min_songs:
            _take(ranked, min_songs, reused=True)
        if len(selected) < min_songs:
            # Padding ignores the source restriction and the keyword rules.
            _take(base, max_songs, reused=False)
            _take(base, min_songs, reused=True)

        return SmartPlaylist(
            id=definition.id,
            name=name,
            description=definition.description,
            insight=insight,
            thumbnail=(selected[0].thumbnail or None) if selected else None,
            songs=selected,
            song_count=len(selected),
            personalized=personalized,
        )

    def build_all(
        self,
        likes: Sequence[LikedTrack],
        plays: Sequence[PlaybackEvent],
        trending: Sequence[TrackResult],
    ) -> list[SmartPlaylist]:
        """Build every playlist in order; later ones prefer tracks earlier ones left."""
        pool = self.build_pool(likes, plays, trending)
        personalized = bool(likes or plays)
        focus = self.focus_artist(likes, plays)
        used_ids: set[str] = set()
        playlists: list[SmartPlaylist] = []
        for definition in self._definitions:
            playlist = self.build_playlist(definition, pool, personalized, used_ids, focus)
            used_ids.update(t.track_id for t in playlist.songs)
            playlists.append(playlist)
        self._logger.debug(
            "smart_playlists_built",
            pool=len(pool),
            personalized=personalized,
            focus_artist=focus,
            sizes={p.id: p.song_count for p in playlists},
        )
        return playlists
