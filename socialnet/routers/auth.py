import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from socialnet.auth import authenticate_token
from socialnet.database import get_db, store_errors
from socialnet.models import User
from socialnet.schemas import (
    MessageOut,
    ProfileUpdate,
    RegisterOut,
    TokenOut,
    UserCreate,
    UserEnvelope,
    UserMessageEnvelope,
    UserOut,
)
from socialnet.utils import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id)})


@router.post("/register", response_model=RegisterOut, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    with store_errors(db, "registering user"):
        if db.query(User).filter(User.email == user.email).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered"
            )
        if db.query(User).filter(User.username == user.username).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken"
            )

        new_user = User(
            username=user.username,
            email=user.email,
            hashed_password=hash_password(user.password),
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio or "",
        )
        db.add(new_user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username or email already in use",
            )
        db.refresh(new_user)
        logger.info("Registered user %s (%s)", new_user.id, new_user.username)
        return RegisterOut(
            message="User registered successfully",
            token=issue_token(new_user),
            user=UserOut.from_user(new_user),
        )


@router.post("/login", response_model=TokenOut)
def login_user(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    # The username field accepts either a username or an email address
    identifier = form_data.username.strip()
    with store_errors(db, "logging in"):
        user = (
            db.query(User)
            .filter((User.username == identifier) | (User.email == identifier.lower()))
            .first()
        )
        if not user or not verify_password(form_data.password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return TokenOut(access_token=issue_token(user), user=UserOut.from_user(user))


@router.get("/me", response_model=UserEnvelope)
def read_users_me(current_user: User = Depends(authenticate_token)):
    return UserEnvelope(user=UserOut.from_user(current_user))


@router.put("/profile", response_model=UserMessageEnvelope)
def update_profile(
    profile: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    with store_errors(db, "updating profile"):
        for name in profile.model_fields_set:
            value = getattr(profile, name)
            if name == "bio":
                value = value or ""
            setattr(current_user, name, value)
        db.commit()
        db.refresh(current_user)
        return UserMessageEnvelope(
            message="Profile updated successfully", user=UserOut.from_user(current_user)
        )


@router.delete("/me", response_model=MessageOut)
def delete_account(
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    """Delete the caller's account together with their posts, likes, comments and follow edges."""
    user_id = current_user.id
    with store_errors(db, "deleting account"):
        db.delete(current_user)
        db.commit()
        logger.info("Deleted user %s and dependent records", user_id)
        return MessageOut(message="Account deleted successfully")
