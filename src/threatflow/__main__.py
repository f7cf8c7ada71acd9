import sys

from threatflow.cli import main

sys.exit(main())
