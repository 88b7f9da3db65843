"""legalstream: streaming client for the legal directive analysis backend."""
from __future__ import annotations

__version__ = "0.1.0"
