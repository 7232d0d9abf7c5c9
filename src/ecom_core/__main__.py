"""Allow ``python -m ecom_core``."""

import sys

from ecom_core.cli import main

sys.exit(main())
