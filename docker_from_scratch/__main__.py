import sys

from docker_from_scratch.cli import main

if __name__ == "__main__":
    sys.exit(main())
