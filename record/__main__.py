"""Allow ``python -m record``."""

import sys

from .cli import main

sys.exit(main())
