"""
Pytest configuration for Timey Zoney tests.
"""

import os
import sys
import tempfile
from pathlib import Path

# Keep session log files out of the working tree
os.environ.setdefault("TIMEYZONEY_LOG_DIR", tempfile.mkdtemp(prefix="timeyzoney-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))
