"""Allow ``python -m tunescout.cli`` execution."""

from tunescout.cli.recommend import main

main()
