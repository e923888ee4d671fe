"""
App assembly entry point.

Re-exports the FastAPI `app` from `bizhub.api.main` for `uvicorn app:app`.
"""

from bizhub.api.main import app  # noqa: F401
