from __future__ import annotations

import os
import sys
from pathlib import Path

# Kernels run on Numba's CUDA simulator unless a caller opts out (NUMBA_ENABLE_CUDASIM=0).
# Must be set before numba is first imported.
os.environ.setdefault("NUMBA_ENABLE_CUDASIM", "1")


def _ensure_src_on_syspath() -> None:
    src = Path(__file__).resolve().parents[1] / "src"
    src_str = str(src)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_src_on_syspath()
