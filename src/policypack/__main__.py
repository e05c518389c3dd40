"""Allow running policypack as ``python -m policypack``."""

import sys

from policypack.cli import main

sys.exit(main())
