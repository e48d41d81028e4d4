import sys

from inkfind.main import main

if __name__ == "__main__":
    sys.exit(main())
