"""支持 `python -m nvim_bridge`。"""

from __future__ import annotations

import sys

from nvim_bridge.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
