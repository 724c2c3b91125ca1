# =============================================================================
# tunescout/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line access to the recommendation engine for operators and
# developers, outside the HTTP API.
#
#   recommend.py
#      Prints a user's bucketed recommendations (or JSON) using the same
#      RecommendationService the API serves, wired by tunescout.main.
#      Also prints the user's smart playlists.
#
# Architecture Notes:
#   - argparse for argument parsing, no extra CLI dependency.
#   - tunescout.main is imported lazily inside the runner so --json can
#     silence logging before any logger is cached.
# =============================================================================

"""CLI tools for tunescout.

- ``python -m tunescout.cli recommend USER`` -- bucketed recommendations
- ``python -m tunescout.cli playlists USER`` -- smart playlists
"""
