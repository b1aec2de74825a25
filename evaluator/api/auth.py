"""
Authentication state endpoints

The identity provider reports sign-in / sign-out here; the events are
forwarded to the auth notifier.
"""
from fastapi import APIRouter, Depends, HTTPException, Request

from evaluator.api.deps import get_auth
from evaluator.core.auth import AuthEvent, AuthEventKind, AuthSession


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signed-in")
async def signed_in(payload: dict, request: Request, auth: AuthSession = Depends(get_auth)):
    """
    Request:
        {"uid": "abc123", "email": "mentor@example.com"}
    """
    uid = payload.get("uid")
    if not uid:
        raise HTTPException(status_code=400, detail="uid is required")

    await request.app.state.notifier.publish(
        AuthEvent(kind=AuthEventKind.SIGNED_IN, uid=uid, email=payload.get("email"))
    )
    return {"success": True, "user": auth.user}


@router.post("/signed-out")
async def signed_out(request: Request):
    await request.app.state.notifier.publish(AuthEvent(kind=AuthEventKind.SIGNED_OUT))
    return {"success": True, "message": "Signed out, cached data cleared"}


@router.get("/me")
async def me(auth: AuthSession = Depends(get_auth)):
    return {"signed_in": auth.user is not None, "user": auth.user}
