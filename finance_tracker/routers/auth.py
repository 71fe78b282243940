import logging

from fastapi import APIRouter, Depends, HTTPException, status

from finance_tracker.core.errors import DuplicateRecordError
from finance_tracker.core.security import create_access_token, get_password_hash, verify_password
from finance_tracker.db.base import RecordStore
from finance_tracker.models.user import PreferencesUpdate, UserCreate, UserInDB, UserLogin, UserPublic
from finance_tracker.routers.deps import get_current_user_id, get_store

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, store: RecordStore = Depends(get_store)):
    if store.get_user_by_email(user.email):
        raise HTTPException(status_code=400, detail="User already exists")

    user_db = UserInDB(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
    )
    try:
        store.put_user(user_db.model_dump(mode="json"))
    except DuplicateRecordError:
        raise HTTPException(status_code=400, detail="User already exists")

    logger.info(f"Registered user {user_db.user_id}")
    return UserPublic(**user_db.model_dump())


@router.post("/login")
def login(login_data: UserLogin, store: RecordStore = Depends(get_store)):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = store.get_user_by_email(login_data.email)

    if not user or not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Invalid credentials for: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": user["user_id"]})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserPublic(**user).model_dump(mode="json"),
    }


@router.get("/me", response_model=UserPublic)
def get_current_user(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Get current user profile"""
    user = store.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic(**user)


@router.put("/preferences", response_model=UserPublic)
def update_preferences(
    update: PreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    changes = update.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    user = store.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    preferences = {**UserPublic(**user).preferences.model_dump(), **changes}
    updated = store.update_user_preferences(user_id, preferences)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserPublic(**updated)
