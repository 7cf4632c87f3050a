"""Shared, immutable per-process context.

Built once in the application lifespan and handed to every request through
the ``get_context`` dependency. Holds no mutable state.
"""
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from starlette.requests import Request

from config.settings import Settings
from src.me_signature.application.verifier import SignatureVerifier


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    verifier: SignatureVerifier


def get_context(request: Request) -> AppContext:
    """FastAPI dependency: the context stored on app.state during startup."""
    context: AppContext = request.app.state.context
    return context
