"""Module entrypoint for ``python -m slntree``.

All argument parsing and runtime setup happen in ``slntree.cli``.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
