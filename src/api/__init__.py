"""
Training events API module.

Provides FastAPI HTTP endpoints for events, participants and votes.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
