"""Allow ``python -m nocharts``."""

import sys

from nocharts.cli import main

sys.exit(main())
