"""Mini README: HTTP interface for the Money Manager ledger.

Exports the FastAPI application factory used by the CLI launcher and tests.
"""

from .web_app import create_application

__all__ = ["create_application"]
