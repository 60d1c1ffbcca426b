import sys

from clickward.cli import main

sys.exit(main())
