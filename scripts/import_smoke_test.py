#!/usr/bin/env python3
"""Import smoke test.

Adds the repository root to sys.path and imports every module of the
``ircbot`` package, reporting failures and a summary.

Usage:
  python scripts/import_smoke_test.py

Exit code 0 if all imports succeed, 1 otherwise.
"""

from __future__ import annotations

import importlib
import pkgutil
import sys
import traceback
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import ircbot  # noqa: E402

failures: dict[str, str] = {}
loaded: list[str] = []

for mod in pkgutil.walk_packages(ircbot.__path__, prefix="ircbot."):
    try:
        importlib.import_module(mod.name)
        loaded.append(mod.name)
    except Exception:  # noqa: BLE001
        failures[mod.name] = traceback.format_exc()

loaded.sort()

print(f"Imported modules: {len(loaded)}")
if failures:
    print(f"Failures: {len(failures)}")
    for k, tb in sorted(failures.items()):
        print(f"--- FAILURE: {k} ---")
        print("\n".join(tb.splitlines()[-25:]))
    sys.exit(1)
print("All imports succeeded.")
