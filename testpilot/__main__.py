import sys

from testpilot.main import main

sys.exit(main())
