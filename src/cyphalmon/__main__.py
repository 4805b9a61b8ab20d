import sys

from cyphalmon.cli import main

sys.exit(main())
