"""Command-line access to recommendations and smart playlists.

Usage::

    python -m tunescout.cli recommend alice
    python -m tunescout.cli recommend alice --refresh --json
    python -m tunescout.cli playlists alice --json

Runs the same fully wired :class:`RecommendationService` as the API
(signal store, catalogue providers, optional LLM re-ranking) and prints a
formatted summary or JSON to stdout.  Logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time

from tunescout.models.playlist import SmartPlaylist
from tunescout.models.recommendation import BUCKET_ORDER, RankedResult
from tunescout.utils.errors import TuneScoutError

_BUCKET_TITLES = {
    "suggested": "Suggested for you",
    "basedOnRecent": "Based on what you played",
    "artistsYouMightLike": "Artists you might like",
    "trendingInYourStyle": "Trending in your style",
    "freshDiscoveries": "Fresh discoveries",
}


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_recommendations_text(result: RankedResult) -> str:
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  tunescout -- Recommendations for {result.user_id}")
    lines.append(sep)
    lines.append("")

    if result.top_artists:
        lines.append(f"Top artists: {', '.join(result.top_artists[:5])}")
    if result.top_genres:
        lines.append(f"Top genres:  {', '.join(result.top_genres)}")
    flags = []
    if result.ai_enhanced:
        flags.append("AI re-ranked")
    if result.fallback_used:
        flags.append("trending fallback")
    if flags:
        lines.append(f"Notes:       {', '.join(flags)}")
    lines.append("")

    for name in BUCKET_ORDER:
        tracks = result.buckets.get(name, [])
        if not tracks:
            continue
        lines.append(f"{_BUCKET_TITLES.get(name, name).upper()} ({len(tracks)})")
        lines.append("-" * 40)
        for track in tracks:
            lines.append(f"  {track.score:5.3f}  {track.title} -- {track.artist}")
            lines.append(f"         {track.reason}")
        lines.append("")

    lines.append(f"{result.total} tracks")
    return "\n".join(lines)


def _format_playlists_text(user_id: str, playlists: list[SmartPlaylist]) -> str:
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  tunescout -- Smart playlists for {user_id}")
    lines.append(sep)
    lines.append("")

    for playlist in playlists:
        tag = "" if playlist.personalized else "  [from trending]"
        lines.append(f"{playlist.name} ({playlist.song_count} songs){tag}")
        lines.append("-" * 40)
        if playlist.insight:
            lines.append(f"  {playlist.insight}")
        for song in playlist.songs:
            lines.append(f"  - {song.title} -- {song.artist}")
        lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _suppress_logs() -> None:
    """Send structlog and stdlib logging to stderr at WARNING and above.

    Must run before ``tunescout.main`` is imported, since structlog caches
    loggers on first use.
    """
    import logging
    import os

    import structlog

    os.environ["LOG_LEVEL"] = "WARNING"

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def _run(command: str, user_id: str, refresh: bool, json_output: bool) -> int:
    """Run one command and print its output.  Returns the process exit code."""
    # Deferred: tunescout.main reads settings and configures logging on import.
    from tunescout.main import service_context

    start = time.monotonic()
    try:
        async with service_context() as service:
            if command == "recommend":
                result = await service.get_recommendations(user_id, force_refresh=refresh)
                if json_output:
                    text = result.model_dump_json(indent=2)
                else:
                    text = _format_recommendations_text(result)
            else:
                playlists = await service.get_smart_playlists(user_id, force_refresh=refresh)
                if json_output:
                    text = json.dumps(
                        [p.model_dump(mode="json") for p in playlists], indent=2
                    )
                else:
                    text = _format_playlists_text(user_id, playlists)
    except TuneScoutError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Done in {time.monotonic() - start:.1f}s", file=sys.stderr)
    print(text)
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m tunescout.cli",
        description="Show personalized recommendations or smart playlists for a user.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("recommend", "Bucketed recommendations for a user."),
        ("playlists", "Smart playlists for a user."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("user_id", type=str, help="The user's id.")
        sub.add_argument(
            "--refresh",
            action="store_true",
            help="Ignore cached results and recompute.",
        )
        sub.add_argument(
            "--json",
            action="store_true",
            dest="json_output",
            help="Output JSON instead of formatted text.",
        )
        sub.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress log output (implied by --json).",
        )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Exits with 0 on success, 1 on a tunescout error."""
    args = _build_parser().parse_args(argv)

    if args.quiet or args.json_output:
        _suppress_logs()

    exit_code = asyncio.run(_run(args.command, args.user_id, args.refresh, args.json_output))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
