"""Remove generated resources, models and collections. Dry-run unless --apply is given."""
import sys

from panelgen.snapshot.reset import main

if __name__ == "__main__":
    sys.exit(main())
