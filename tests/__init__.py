"""Tests package"""

# Lets ``python tests/test_*.py`` import the project modules when the
# repository root is not already on ``sys.path`` (pytest adds it when run
# from the root). Standalone scripts such as ``data/data_generator.py`` do
# the same.
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
