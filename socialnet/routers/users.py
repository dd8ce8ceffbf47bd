import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from socialnet.auth import authenticate_token
from socialnet.database import get_db, store_errors
from socialnet.models import Follower, Post, User
from socialnet.routers.posts import POST_LOADERS, newest_first, page_window
from socialnet.schemas import (
    FollowersOut,
    FollowingOut,
    FollowOut,
    FollowUser,
    PostOut,
    UserList,
    UserOut,
    UserPage,
    UserProfile,
    UserWithPosts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

PROFILE_POST_LIMIT = 10
SEARCH_LIMIT = 10

EDGE_LOADERS = (
    selectinload(User.following_edges).selectinload(Follower.followed),
    selectinload(User.follower_edges).selectinload(Follower.follower),
)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).options(*EDGE_LOADERS).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@router.get("", response_model=UserPage)
def get_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
):
    with store_errors(db, "fetching users"):
        total_users = db.query(User).count()
        window = page_window(page, limit, total_users)
        users = []
        if window:
            offset, size = window
            users = (
                db.query(User)
                .options(*EDGE_LOADERS)
                .order_by(User.created_at.desc(), User.id.desc())
                .offset(offset)
                .limit(size)
                .all()
            )
        return UserPage(
            users=[UserOut.from_user(u) for u in users],
            current_page=page,
            total_pages=math.ceil(total_users / limit),
            total_users=total_users,
        )


# Registered before /{user_id} routes so "search" is never read as an id
@router.get("/search/{username}", response_model=UserList)
def search_users(username: str, db: Session = Depends(get_db)):
    with store_errors(db, "searching users"):
        users = (
            db.query(User)
            .options(*EDGE_LOADERS)
            .filter(User.username.ilike(f"%{escape_like(username)}%", escape="\\"))
            .order_by(User.username)
            .limit(SEARCH_LIMIT)
            .all()
        )
        return UserList(users=[UserOut.from_user(u) for u in users])


@router.get("/{user_id}", response_model=UserWithPosts)
def get_user(user_id: int, db: Session = Depends(get_db)):
    with store_errors(db, "fetching user"):
        user = get_user_or_404(db, user_id)
        posts = (
            newest_first(db.query(Post).options(*POST_LOADERS).filter(Post.owner_id == user.id))
            .limit(PROFILE_POST_LIMIT)
            .all()
        )
        return UserWithPosts(
            user=UserProfile.from_user(user),
            posts=[PostOut.from_post(p) for p in posts],
        )


@router.post("/{user_id}/follow", response_model=FollowOut)
def follow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot follow yourself")

    with store_errors(db, "following user"):
        followed = db.get(User, user_id)
        if not followed:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if current_user.is_following(followed.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are already following this user",
            )

        db.add(Follower(follower_id=current_user.id, followed_id=followed.id))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are already following this user",
            )
        logger.info("User %s followed user %s", current_user.id, followed.id)
        return FollowOut(message="User followed successfully", following=True)


@router.post("/{user_id}/unfollow", response_model=FollowOut)
def unfollow_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    with store_errors(db, "unfollowing user"):
        followed = db.get(User, user_id)
        if not followed:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

        follow_relationship = (
            db.query(Follower)
            .filter(Follower.follower_id == current_user.id, Follower.followed_id == followed.id)
            .first()
        )
        if not follow_relationship:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are not following this user",
            )

        db.delete(follow_relationship)
        db.commit()
        logger.info("User %s unfollowed user %s", current_user.id, followed.id)
        return FollowOut(message="User unfollowed successfully", following=False)


@router.get("/{user_id}/following", response_model=FollowingOut)
def get_following(user_id: int, db: Session = Depends(get_db)):
    with store_errors(db, "fetching following"):
        user = get_user_or_404(db, user_id)
        return FollowingOut(following=[FollowUser.from_user(u) for u in user.following])


@router.get("/{user_id}/followers", response_model=FollowersOut)
def get_followers(user_id: int, db: Session = Depends(get_db)):
    with store_errors(db, "fetching followers"):
        user = get_user_or_404(db, user_id)
        return FollowersOut(followers=[FollowUser.from_user(u) for u in user.followers])
