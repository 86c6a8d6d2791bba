"""Entry point for gator: python -m gator <command> [args]"""

import sys

from gator.cli import main

if __name__ == "__main__":
    sys.exit(main())
