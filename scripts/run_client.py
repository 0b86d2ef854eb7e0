#!/usr/bin/env python3
"""Query an NTP server once from a source checkout.

Usage examples:
  - python scripts/run_client.py -s pool.ntp.org
  - python scripts/run_client.py -s 127.0.0.1 -p 12300 -t 1 --log-level DEBUG

Same as the installed ``ntp-sync`` command, without needing an install.
"""

from __future__ import annotations

import sys
from pathlib import Path


# Ensure src is on sys.path
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ntpsync.app.main import main  # type: ignore  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
