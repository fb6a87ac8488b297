"""Contract valuation and billing-cycle backend.

The FastAPI app is imported lazily so Alembic and the CLI scripts can load
the models without building the web application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI


def get_app() -> "FastAPI":
    """Return the FastAPI application, importing it on first use."""

    from .main import app

    return app


__all__ = ["get_app"]
