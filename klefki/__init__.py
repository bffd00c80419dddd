"""
Top‑level package for Klefki, a broker for two-party key exchanges.

The package provides no public exports; the application lives in
``klefki.app``.
"""

__all__ = []
