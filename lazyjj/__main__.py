"""Module entrypoint for ``python -m lazyjj``.

All argument parsing and runtime setup happen in ``lazyjj.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
