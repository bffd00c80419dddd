"""Version 1 of the exchange API."""
