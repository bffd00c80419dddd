"""HTTP routers, grouped by API version."""
