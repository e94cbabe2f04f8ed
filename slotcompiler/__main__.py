import sys

from slotcompiler.cli import main

sys.exit(main())
