import sys

from roadmap_admin.cli import main

sys.exit(main())
