import os
import sys

# Make `src.analysis` and `src.generation` importable without installing
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, PROJECT_ROOT)

import matplotlib  # noqa: E402

# Tests never open windows
matplotlib.use("Agg")
