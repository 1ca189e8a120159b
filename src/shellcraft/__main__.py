"""Module entry point for `python -m shellcraft`."""

from shellcraft.cli.main import main

if __name__ == "__main__":
    main()
