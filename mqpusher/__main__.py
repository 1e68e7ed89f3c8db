import sys

from mqpusher.cli.push_cli import main

sys.exit(main())
