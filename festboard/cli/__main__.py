import sys

from festboard.cli import main

sys.exit(main())
