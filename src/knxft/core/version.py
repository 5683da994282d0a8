"""Build-time version of the protocol engine.

The major version gates compatibility with the device firmware.
"""

from __future__ import annotations

__version__ = "1.0.0"

ENGINE_VERSION: tuple[int, int, int] = (1, 0, 0)
