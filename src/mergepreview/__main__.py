"""Module entrypoint for `python -m mergepreview`."""

from mergepreview.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
