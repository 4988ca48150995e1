from __future__ import annotations

from dynrender.cli import main

raise SystemExit(main())
