"""CLI package for imggen.

Usage:
    from imggen.cli import app
    from imggen.cli import ui
"""

from __future__ import annotations

from imggen.cli import ui
from imggen.cli.main import app

__all__ = ["app", "ui"]
