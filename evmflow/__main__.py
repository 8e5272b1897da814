import sys

from evmflow.cli import main

sys.exit(main())
