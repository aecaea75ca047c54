"""Run the MediaVault CLI from a source checkout: `python main.py <command> ...`."""

import sys
from pathlib import Path

# src/ layout: make `import mediavault` work without installing
SRC = Path(__file__).resolve().parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from mediavault.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
