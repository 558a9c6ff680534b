"""Allow ``python -m embedpy``."""

from embedpy.cli.app import main

if __name__ == "__main__":
    main()
