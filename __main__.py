"""Allow ``python -m qlog_normals``."""
import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
