"""
Dependencies shared by every router: the record store handle and the
authenticated caller.
"""
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from finance_tracker.core.security import decode_access_token
from finance_tracker.db.base import RecordStore


def get_store(request: Request) -> RecordStore:
    """The record store opened by the app lifespan"""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Record store not ready")
    return store


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Extract user_id from the JWT bearer token"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")

    token = authorization.replace("Bearer ", "", 1)
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id
