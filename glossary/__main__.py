"""Entry point for ``python -m glossary``."""

from __future__ import annotations

import sys
from pathlib import Path

# Paketpfad korrigieren, falls direkt als Skript gestartet
if __package__ in {None, ""}:
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
    __package__ = "glossary"

from .cli import main

if __name__ == "__main__":
    main()
