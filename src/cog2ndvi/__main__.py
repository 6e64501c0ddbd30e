"""Module entrypoint for `python -m cog2ndvi`."""

from __future__ import annotations

from cog2ndvi.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
