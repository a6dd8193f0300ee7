"""Allow ``python -m javacheck``."""

import sys

from javacheck.main import main

sys.exit(main())
