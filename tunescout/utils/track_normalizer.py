"""Normalization boundary for loosely-typed search and chart payloads.

The search service and the chart feed do not agree on a response shape:
ids arrive as ``videoId``, ``id`` or ``trackId``; artists as a list of
strings, a list of ``{"name": ...}`` objects, a single ``artist`` string or
an ``authors`` list; thumbnails as a string or a ``thumbnails`` array of
strings or objects.  Everything is funneled through :func:`normalize_track`
so that code past the provider layer only ever sees :class:`TrackResult`.

Unknown fields are ignored.  A payload without any usable id is rejected
(``None``); missing title/artist fall back to placeholder text.
"""

from __future__ import annotations

import math
from typing import Any

from tunescout.models.tracks import TrackResult

_ID_FIELDS = ("videoId", "video_id", "id", "trackId", "track_id")
_LIST_ENVELOPE_FIELDS = ("songs", "tracks", "items", "results", "data")


def _first_str(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _artist_text(payload: dict[str, Any]) -> str:
    artists = payload.get("artists")
    if isinstance(artists, list):
        names: list[str] = []
        for entry in artists:
            if isinstance(entry, dict):
                name = _first_str(entry.get("name"))
            else:
                name = _first_str(entry)
            if name:
                names.append(name)
        if names:
            return ", ".join(names)
    elif isinstance(artists, str) and artists.strip():
        return artists.strip()

    artist = payload.get("artist")
    if isinstance(artist, dict):
        artist = artist.get("name")
    if _first_str(artist):
        return _first_str(artist)

    authors = payload.get("authors")
    if isinstance(authors, list):
        names = [_first_str(a.get("name") if isinstance(a, dict) else a) for a in authors]
        names = [n for n in names if n]
        if names:
            return ", ".join(names)
    return ""


def _thumbnail(payload: dict[str, Any]) -> str:
    direct = _first_str(payload.get("thumbnail"))
    if direct:
        return direct
    thumbnails = payload.get("thumbnails")
    if isinstance(thumbnails, list) and thumbnails:
        first = thumbnails[0]
        if isinstance(first, dict):
            return _first_str(first.get("url"))
        return _first_str(first)
    return _first_str(payload.get("image"))


def _duration(payload: dict[str, Any]) -> str:
    duration = payload.get("duration")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool):
        total = int(duration)
        return f"{total // 60}:{total % 60:02d}"
    return _first_str(duration)


def _popularity(payload: dict[str, Any]) -> float | None:
    """Map whatever popularity signal is present onto 0.0-1.0.

    ``popularity`` is taken as already normalized (or a 0-100 percentage);
    raw ``views`` are log-compressed against one billion plays.
    """
    raw = payload.get("popularity")
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw >= 0:
        value = float(raw)
        return min(value / 100.0 if value > 1.0 else value, 1.0)

    views = payload.get("views")
    if isinstance(views, str):
        views = views.replace(",", "").strip()
        views = int(views) if views.isdigit() else None
    if isinstance(views, (int, float)) and not isinstance(views, bool) and views > 0:
        return min(math.log10(float(views) + 1.0) / 9.0, 1.0)
    return None


def normalize_track(payload: Any) -> TrackResult | None:
    """Convert one external track payload into a :class:`TrackResult`.

    Returns ``None`` when the payload is not a mapping or has no id.
    """
    if not isinstance(payload, dict):
        return None

    track_id = ""
    for key in _ID_FIELDS:
        track_id = _first_str(payload.get(key))
        if track_id:
            break
    if not track_id:
        return None

    title = _first_str(payload.get("title")) or _first_str(payload.get("name")) or "Unknown Title"
    artist = _artist_text(payload) or "Unknown Artist"

    return TrackResult(
        track_id=track_id,
        title=title,
        artist=artist,
        thumbnail=_thumbnail(payload),
        duration_label=_duration(payload),
        popularity=_popularity(payload),
    )


def normalize_track_list(payload: Any) -> list[TrackResult]:
    """Normalize a list payload or a ``{"songs": [...]}``-style envelope.

    Entries that fail normalization are dropped; duplicate ids keep their
    first occurrence.
    """
    items: Any = payload
    if isinstance(payload, dict):
        items = next(
            (payload[k] for k in _LIST_ENVELOPE_FIELDS if isinstance(payload.get(k), list)),
            [],
        )
    if not isinstance(items, list):
        return []

    results: list[TrackResult] = []
    seen: set[str] = set()
    for item in items:
        track = normalize_track(item)
        if track is None or track.track_id in seen:
            continue
        seen.add(track.track_id)
        results.append(track)
    return results
