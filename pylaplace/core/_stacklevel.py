"""
Stack level for warnings raised deep inside pylaplace.

Mode finding can be reached from laplace(), from
SingleLaplaceInference.update() or from any lazily updating accessor, so
a fixed stacklevel would point at a different pylaplace frame on each
path. find_stack_level() counts frames up to the first one outside the
package instead.
"""

import inspect
import os

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def find_stack_level() -> int:
    """stacklevel for warnings.warn that points at the first caller outside pylaplace."""
    frame = inspect.currentframe()
    level = 0
    try:
        while frame is not None:
            filename = os.path.abspath(inspect.getfile(frame))
            if not filename.startswith(_PACKAGE_DIR + os.sep):
                break
            frame = frame.f_back
            level += 1
    finally:
        del frame
    return level
