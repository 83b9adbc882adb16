"""Allow ``python -m whydiag``."""

import sys

from whydiag.run_diagnostics import main

sys.exit(main())
