"""Allow running localblob with python -m localblob."""

import sys

from localblob.cli import main

sys.exit(main())
