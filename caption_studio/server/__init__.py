"""HTTP server package — FastAPI app, request models, and the export job store.

WHY: The browser editor talks to the backend over HTTP. This package is
the thin layer that validates requests, calls the core pipelines, and
maps their errors to status codes.

RULES:
- Importing this package must not import the app (no server startup side effects)
"""
