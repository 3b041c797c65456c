import sys

from src.benchmark.cli import main

sys.exit(main())
