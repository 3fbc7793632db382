"""
Test Suite for firewatch
Tests for classification, frame analysis, confirmation, alerts and runtime
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

__version__ = "1.0.0"
