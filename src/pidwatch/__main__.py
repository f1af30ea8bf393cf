import sys

from pidwatch.cli import main

sys.exit(main())
