"""Allow ``python -m i18nkit``."""

import sys

from .cli import main

sys.exit(main())
