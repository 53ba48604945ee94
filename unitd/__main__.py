import sys

from unitd.main import main

sys.exit(main())
