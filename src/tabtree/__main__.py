"""Module entrypoint for `python -m tabtree`."""

try:
    from .cli import run
except ImportError:
    # Executed as a plain script outside the package context.
    from tabtree.cli import run


if __name__ == "__main__":
    raise SystemExit(run())
