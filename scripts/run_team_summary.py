"""
Run one team-summary pass now.

Usage:
    python scripts/run_team_summary.py              # Only subjects inside their local trigger hour
    python scripts/run_team_summary.py --force      # Every subject, ignoring the trigger window
    python scripts/run_team_summary.py --no-notify  # Build and store, skip push notifications
"""
from pathlib import Path
import os
import sys
import uuid

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from teamsum.logging import setup_logging
from teamsum.pipeline.orchestrator import run_from_settings

if __name__ == '__main__':
    flags = set(sys.argv[1:])
    setup_logging()
    run_id = str(uuid.uuid4())
    print('Run', run_id)
    result = run_from_settings(run_id=run_id, force='--force' in flags, notify='--no-notify' not in flags)
    print('Done.', {k: v for k, v in result.items() if k != 'run_id'})
