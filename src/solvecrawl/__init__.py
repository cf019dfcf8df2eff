"""SolveCrawl: solved-problem history crawler for online judges."""

from __future__ import annotations

from solvecrawl.shared.constants import Application

__version__ = Application.VERSION

__all__ = ["__version__"]
