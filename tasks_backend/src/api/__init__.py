"""
Tasks API package.

FastAPI service exposing CRUD, completion toggle and filtered, paginated
listing of tasks under /api/v1/tasks. The application instance lives in
`src.api.main`.
"""
