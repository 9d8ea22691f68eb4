"""Allow ``python -m tilelink``."""

from tilelink.cli import main

if __name__ == "__main__":
    main()
