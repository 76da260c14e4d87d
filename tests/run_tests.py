"""
Runs the contour editor test suite with pytest.

Puts src/ on PYTHONPATH and selects the offscreen Qt platform so the GUI
adapter tests run without a display. Extra arguments go to pytest:
  python tests/run_tests.py -k brush
"""

import os
import subprocess
import sys


def main(argv):
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (os.path.join(project_root, "src"), env.get("PYTHONPATH")) if p)
    env.setdefault("QT_QPA_PLATFORM", "offscreen")
    command = [sys.executable, "-m", "pytest", "tests", "--tb=short"] + list(argv)
    return subprocess.call(command, env=env, cwd=project_root)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
