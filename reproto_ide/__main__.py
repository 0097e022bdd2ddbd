"""Package entry point — allows ``python -m reproto_ide``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
