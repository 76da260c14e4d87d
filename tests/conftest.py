"""
Pytest and unittest configuration for DICOM Contour Editor tests.

Adds project src/ to sys.path so tests can import from core, utils, gui, tools.
Run tests from project root with:
  - pytest
  - python -m unittest discover -s tests -p "test_*.py"
  - python tests/run_tests.py
"""

import sys
import os

# Add src to path so that "from core.xxx" and "from tools.xxx" work
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_src_dir = os.path.join(_project_root, "src")
if _src_dir not in sys.path:
    sys.path.insert(0, _src_dir)

# Qt tests run headless
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
