import sys

from syncscp.cli import main

sys.exit(main())
