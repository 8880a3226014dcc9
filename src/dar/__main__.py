"""Module entrypoint for `python -m dar`."""

try:
    from .cli import run
except ImportError:
    # Frozen one-file builds can execute this module outside package context.
    from dar.cli import run


if __name__ == "__main__":
    raise SystemExit(run())
