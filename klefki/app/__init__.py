"""
Application package initializer.

The API is organised into ``core`` (configuration, database, security,
errors), ``schemas`` (request and response bodies), ``services``
(exchange store and protocol logic) and ``api`` (versioned routers).
"""

from .main import app  # noqa: F401
