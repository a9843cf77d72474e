"""Allow ``python -m calcana_sync``."""

import sys

from calcana_sync.cli import main

sys.exit(main())
