import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.user import PasswordChange, UserCreate, UserInDB, UserLogin, UserProfileUpdate, UserPublic
from app.routers.deps import get_current_user_id, get_store, ok

router = APIRouter()
logger = logging.getLogger(__name__)


def _token_response(user: dict) -> dict:
    access_token = create_access_token(data={"sub": user["user_id"]})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserPublic(**user).model_dump(mode="json"),
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, store=Depends(get_store)):
    # Check if user already exists
    if store.get_user_by_email(user.email):
        raise ConflictError("User already exists")

    user_db = UserInDB(
        email=user.email,
        name=user.name,
        password_hash=get_password_hash(user.password),
    )
    record = store.put_user(user_db.model_dump(mode="json"))
    logger.info(f"Registered user {user_db.user_id}")
    return ok(_token_response(record), "User registered successfully")


@router.post("/login")
def login(login_data: UserLogin, store=Depends(get_store)):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = store.get_user_by_email(login_data.email)

    if not user or not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Invalid credentials for: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    logger.info(f"Login successful for user: {login_data.email}")
    return ok(_token_response(user))


@router.get("/me")
def get_current_user(user_id: str = Depends(get_current_user_id), store=Depends(get_store)):
    """Get current user profile"""
    user = store.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return ok(UserPublic(**user).model_dump(mode="json"))


@router.put("/profile")
def update_profile(
    profile: UserProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    updates = profile.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise ValidationError("No fields to update")

    if "email" in updates:
        owner = store.get_user_by_email(updates["email"])
        if owner and owner["user_id"] != user_id:
            raise ConflictError("Email already in use")

    user = store.update_user(user_id, updates)
    if not user:
        raise NotFoundError("User not found")
    logger.info(f"Updated profile ({', '.join(sorted(updates))}) for user {user_id}")
    return ok(UserPublic(**user).model_dump(mode="json"), "Profile updated successfully")


@router.put("/password")
def change_password(
    password_change: PasswordChange,
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_store),
):
    """Returns a fresh token; tokens issued earlier stay valid until they expire."""
    if password_change.new_password != password_change.confirm_password:
        raise ValidationError("New passwords do not match")

    user = store.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(password_change.current_password, user["password_hash"]):
        logger.warning(f"Password change with wrong current password for user {user_id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    user = store.update_user(user_id, {"password_hash": get_password_hash(password_change.new_password)})
    logger.info(f"Password changed for user {user_id}")
    return ok(_token_response(user), "Password changed successfully")


@router.post("/logout")
def logout(user_id: str = Depends(get_current_user_id)):
    """Tokens are stateless; the client discards its copy."""
    logger.info(f"User {user_id} logged out")
    return ok(message="Logged out successfully")
