#!/usr/bin/env python3
"""
Coin Ledger Demo Entry Point

Runs the wallet / ledger scenario and prints every balance change.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from coin_ledger.demo import main


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted")
    except Exception as e:
        print(f"Error running demo: {e}")
        sys.exit(1)
