import sys

from cloudmigr.cli import main

sys.exit(main())
