"""Unit tests for SmartPlaylistBuilder (keyword scoring, caps, cold start)."""

from __future__ import annotations

import pytest

from tunescout.services.smart_playlist_builder import (
    PLAYLISTS,
    SOURCE_HISTORY,
    SOURCE_LIKED,
    SmartPlaylistBuilder,
)
from tests.conftest import chart_of, make_like, make_play, make_track

_LOFI_LIKES = [
    make_like("l1", title="Lofi Study Session", artist="Chillhop Music"),
    make_like("l2", title="Rainy Night Lofi", artist="Lofi Girl", minutes_ago=1),
    make_like("l3", title="Calm Piano", artist="Study Beats", minutes_ago=2),
]

# Five liked tracks with no keyword at all, five trending "lofi" tracks.
_PLAIN_LIKES = [
    make_like(f"plain{i}", title=f"Plain Song {i}", artist=f"Plain Artist {i}", minutes_ago=i)
    for i in range(5)
]
_LOFI_CHART = [
    make_track(f"lofi{i}", title=f"Lofi Beat {i}", artist=f"Beat Maker {i}") for i in range(5)
]


def _by_id(playlists):
    return {p.id: p for p in playlists}


def _definition(playlist_id: str):
    return next(d for d in PLAYLISTS if d.id == playlist_id)


def _ids(playlist) -> list[str]:
    return [t.track_id for t in playlist.songs]


class TestSmartPlaylistBuilder:
    @pytest.fixture()
    def builder(self, engine_config) -> SmartPlaylistBuilder:
        return SmartPlaylistBuilder(engine_config)

    def test_six_fixed_playlists(self, builder: SmartPlaylistBuilder) -> None:
        playlists = builder.build_all([], [], [])
        assert [p.id for p in playlists] == [d.id for d in PLAYLISTS]
        assert [p.id for p in playlists] == [
            "smart-favorites",
            "smart-on-repeat",
            "smart-mood-chill",
            "smart-tempo-energy",
            "smart-time-night",
            "smart-artist-mix",
        ]
        assert all(p.songs == [] and p.thumbnail is None for p in playlists)

    def test_lofi_listener(self, builder: SmartPlaylistBuilder) -> None:
        playlists = _by_id(builder.build_all(_LOFI_LIKES, [], chart_of(30)))

        chill = playlists["smart-mood-chill"]
        assert _ids(chill)[:3] == ["l1", "l3", "l2"]
        assert chill.personalized is True
        assert chill.insight == "Weighted by your favorite artists."

        night = playlists["smart-time-night"]
        assert night.songs[0].track_id == "l2"

        favorites = playlists["smart-favorites"]
        assert set(_ids(favorites)[:3]) == {"l1", "l2", "l3"}
        # Three likes are padded from the rest of the pool up to the cap.
        assert favorites.song_count == 25
        assert _ids(favorites)[3:5] == ["c0", "c1"]

    def test_keyword_matches_rank_before_non_matching(
        self, builder: SmartPlaylistBuilder
    ) -> None:
        pool = builder.build_pool(_PLAIN_LIKES, [], _LOFI_CHART)

        chill = builder.build_playlist(_definition("smart-mood-chill"), pool, personalized=True)

        assert _ids(chill)[:5] == [f"lofi{i}" for i in range(5)]
        # The liked tracks only arrive as padding.
        assert _ids(chill)[5:] == [f"plain{i}" for i in range(5)]

    def test_keyword_matches_lead_after_earlier_playlists(
        self, builder: SmartPlaylistBuilder
    ) -> None:
        chill = _by_id(builder.build_all(_PLAIN_LIKES, [], _LOFI_CHART))["smart-mood-chill"]

        assert _ids(chill)[:5] == [f"lofi{i}" for i in range(5)]

    def test_excluded_keywords_keep_energy_tracks_out_of_chill(
        self, builder: SmartPlaylistBuilder
    ) -> None:
        chart = [
            make_track("mix", title="Chill Party Remix", artist="DJ One"),
            make_track("calm", title="Calm Waters", artist="Harbor"),
            make_track("club", title="Club Anthem", artist="DJ Two"),
        ]
        pool = builder.build_pool([], [], chart)

        chill = builder.build_playlist(_definition("smart-mood-chill"), pool, personalized=False)
        energy = builder.build_playlist(_definition("smart-tempo-energy"), pool, personalized=False)

        # Ranked tracks first, then the rest as padding in pool order.
        assert _ids(chill) == ["calm", "mix", "club"]
        assert _ids(energy) == ["club", "mix", "calm"]

    def test_short_playlist_is_padded_to_the_cap(self, builder: SmartPlaylistBuilder) -> None:
        favorites = _by_id(builder.build_all([make_like("l1")], [], chart_of(40)))["smart-favorites"]

        assert favorites.song_count == 25
        assert _ids(favorites)[:3] == ["l1", "c0", "c1"]

    def test_deep_chart_gives_disjoint_playlists(self, builder: SmartPlaylistBuilder) -> None:
        playlists = builder.build_all([], [], chart_of(200))

        seen: set[str] = set()
        for playlist in playlists:
            ids = set(_ids(playlist))
            assert playlist.song_count == 25
            assert not ids & seen, playlist.id
            seen |= ids

    def test_fresh_matches_rank_before_reused_ones(self, builder: SmartPlaylistBuilder) -> None:
        likes = [make_like("l1", title="Lofi One", artist="Artist A")]
        chart = chart_of(60) + [make_track("chill2", title="Chill Two", artist="Artist B")]

        playlists = _by_id(builder.build_all(likes, [], chart))

        assert "l1" in _ids(playlists["smart-favorites"])
        assert "chill2" not in _ids(playlists["smart-favorites"])
        # l1 scores higher, but favorites already used it.
        assert _ids(playlists["smart-mood-chill"])[:2] == ["chill2", "l1"]

    def test_artist_mix_follows_top_artist(self, builder: SmartPlaylistBuilder) -> None:
        plays = [make_play(f"p{i}", artist="Artist L", minutes_ago=i) for i in range(8)]
        likes = [make_like("l1", artist="Artist M")]

        mix = _by_id(builder.build_all(likes, plays, chart_of(30)))["smart-artist-mix"]

        assert mix.name == "Artist L Mix"
        assert mix.insight == "Top artist: Artist L"
        assert mix.song_count == 6
        assert {t.artist for t in mix.songs} == {"Artist L"}

    def test_focus_artist_weights_likes_above_plays(self) -> None:
        likes = [make_like("l1", artist="Artist M feat. Artist N")]
        plays = [make_play("p1", artist="Artist L")]
        assert SmartPlaylistBuilder.focus_artist(likes, plays) == "artist m"
        assert SmartPlaylistBuilder.focus_artist(likes, plays * 2) == "artist l"
        assert SmartPlaylistBuilder.focus_artist([], []) is None

    def test_max_songs_and_artist_cap(self, builder: SmartPlaylistBuilder) -> None:
        chart = [make_track(f"same{i}", artist="One Artist") for i in range(10)] + chart_of(40)

        favorites = _by_id(builder.build_all([], [make_play("p1")], chart))["smart-favorites"]

        assert favorites.song_count == 25
        assert len(favorites.songs) == 25
        assert favorites.songs[0].track_id == "p1"
        assert sum(1 for t in favorites.songs if t.artist == "One Artist") == 4

    def test_cold_start_uses_trending_only(self, builder: SmartPlaylistBuilder) -> None:
        playlists = builder.build_all([], [], chart_of(30))

        for playlist in playlists:
            assert playlist.personalized is False
            assert playlist.song_count > 0
        by_id = _by_id(playlists)
        assert by_id["smart-favorites"].insight == "Popular picks to start your mix."
        assert by_id["smart-artist-mix"].name == "Artist Mix"
        assert by_id["smart-artist-mix"].insight == "Artist mix to start your taste profile."

    def test_artist_cap_applies_to_likes(self, builder: SmartPlaylistBuilder) -> None:
        likes = [make_like(f"a{i}", artist="Artist A", minutes_ago=i) for i in range(8)]
        chart = chart_of(20)

        favorites = _by_id(builder.build_all(likes, [], chart))["smart-favorites"]

        assert favorites.song_count == 24
        assert sum(1 for t in favorites.songs if t.artist == "Artist A") == 4

    def test_deterministic(self, builder: SmartPlaylistBuilder) -> None:
        plays = [make_play(f"p{i}", artist=f"Player {i}", minutes_ago=i) for i in range(10)]
        first = builder.build_all(_LOFI_LIKES, plays, chart_of(30))
        second = builder.build_all(_LOFI_LIKES, plays, chart_of(30))
        assert first == second

    def test_pool_dedup_keeps_first_weight_and_all_sources(
        self, builder: SmartPlaylistBuilder
    ) -> None:
        pool = builder.build_pool([make_like("t1")], [make_play("t1"), make_play("t2")], [])

        assert [e.track.track_id for e in pool] == ["t1", "t2"]
        assert pool[0].weight == pytest.approx(2.0)
        assert pool[0].sources == {SOURCE_LIKED, SOURCE_HISTORY}
        assert pool[1].weight == pytest.approx(1.5)

    def test_keyword_hits(self) -> None:
        track = make_track("x", title="Midnight Drive", artist="Neon City")
        assert SmartPlaylistBuilder.keyword_hits(track, ("night", "drive", "neon", "city", "sun")) == 4
