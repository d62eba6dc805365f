"""HTTP layer: FastAPI routers and dependency wiring."""
