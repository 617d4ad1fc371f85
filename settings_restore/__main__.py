import sys

from settings_restore.cli import main

sys.exit(main())
