#!/usr/bin/env python3
import os
import sys
import tempfile
from pathlib import Path

# Set minimal environment variables as early as possible (on import),
# so modules imported during test collection see them.
_base_dir = Path(tempfile.mkdtemp(prefix="test_env_"))
_logs = _base_dir / "logs"
_locks = _base_dir / "locks"

for _p in (_logs, _locks):
    _p.mkdir(parents=True, exist_ok=True)

os.environ.setdefault("LOG_DIR", str(_logs))
os.environ.setdefault("LOCK_DIR", str(_locks))

# Explicit defaults used in tests
os.environ.setdefault("BOT_TYPE", "primary")
os.environ.setdefault("METRICS_LOG_FILE", "")
os.environ.setdefault("MEDIA_GROUP_WINDOW_SECONDS", "0.05")

# Ensure the bot modules are importable
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "poem-archive-bot"))
