"""
Shared router dependencies

The application context, loader and auth session live on app.state and are
handed to endpoints through these dependencies.
"""
from fastapi import Depends, HTTPException, Request

from evaluator.context import AppContext
from evaluator.core.auth import AuthSession
from evaluator.core.loader import CollectionLoader


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_loader(request: Request) -> CollectionLoader:
    return request.app.state.loader


def get_auth(request: Request) -> AuthSession:
    return request.app.state.auth


def require_permission(permission: str):
    """Dependency factory: 401 when signed out, 403 without the permission"""

    async def check(auth: AuthSession = Depends(get_auth)) -> AuthSession:
        if auth.user is None:
            raise HTTPException(status_code=401, detail="Sign in required")
        if not auth.can(permission):
            raise HTTPException(status_code=403, detail=f"'{permission}' permission required")
        return auth

    return check
