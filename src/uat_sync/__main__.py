"""Allow ``python -m uat_sync``."""

from .cli import main

if __name__ == "__main__":
    main()
