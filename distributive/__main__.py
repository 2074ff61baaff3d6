import sys

from distributive.cli import main

sys.exit(main())
