"""HTTP surface of Proma: FastAPI app, routes and middleware."""
