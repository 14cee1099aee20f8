#!/usr/bin/env python3
"""
Weekly rota run (outputs only, nothing published)

Usage:
  python scripts/run_dry_run.py --week 2026-03-02 --seed 7

Outputs to outputs/ directory.
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pharmacy_rota.dry_run import main

if __name__ == "__main__":
    main()
