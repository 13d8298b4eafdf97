"""Console entrypoint.

The CLI itself is implemented in `rdm.main`.
"""

from __future__ import annotations

from rdm.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
