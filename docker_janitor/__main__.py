import sys
from docker_janitor.cli import main

sys.exit(main())
