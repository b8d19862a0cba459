"""Allow running the package as a module: python -m staking_vault"""

import sys

from staking_vault.cli import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
