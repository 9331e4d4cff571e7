"""HTTP layer: routers, dependencies, cookie handling, exception mapping."""
