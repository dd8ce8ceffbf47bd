import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from socialnet.auth import authenticate_token, optional_auth
from socialnet.database import get_db, store_errors
from socialnet.models import Comment, Like, Post, User
from socialnet.schemas import (
    CommentCreate,
    LikeOut,
    MessageOut,
    PostCreate,
    PostEnvelope,
    PostOut,
    PostPage,
    PostUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])

# Everything PostOut touches, loaded up front so listing a page is a fixed number of queries
POST_LOADERS = (
    selectinload(Post.author),
    selectinload(Post.likes),
    selectinload(Post.comments).selectinload(Comment.user),
)

NO_CONTENT_MESSAGE = "Post must have text or an image."


def newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.id.desc())


def page_window(page: int, limit: int, total: int):
    """Return (offset, size) for a page, or None when the page lies past the last row.

    Both values are bounded by ``total`` so they always fit a database integer.
    """
    offset = (page - 1) * limit
    if offset >= total:
        return None
    return offset, min(limit, total - offset)


def get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.query(Post).options(*POST_LOADERS).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def require_author(post: Post, user: User, action: str) -> None:
    if post.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} this post",
        )


@router.get("", response_model=PostPage)
def get_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(optional_auth),
):
    with store_errors(db, "fetching posts"):
        total_posts = db.query(Post).count()
        window = page_window(page, limit, total_posts)
        posts = []
        if window:
            offset, size = window
            posts = (
                newest_first(db.query(Post).options(*POST_LOADERS))
                .offset(offset)
                .limit(size)
                .all()
            )
        return PostPage(
            posts=[PostOut.from_post(p, current_user) for p in posts],
            current_page=page,
            total_pages=math.ceil(total_posts / limit),
            total_posts=total_posts,
        )


@router.get("/{post_id}", response_model=PostOut)
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(optional_auth),
):
    with store_errors(db, "fetching the post"):
        post = get_post_or_404(db, post_id)
        return PostOut.from_post(post, current_user)


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
def create_post(
    post: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    content = post.content or ""
    image_url = post.image_url or None
    if not content and not image_url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NO_CONTENT_MESSAGE)

    with store_errors(db, "creating post"):
        new_post = Post(content=content, image_url=image_url, owner_id=current_user.id)
        db.add(new_post)
        db.commit()
        db.refresh(new_post)
        logger.info("User %s created post %s", current_user.id, new_post.id)
        return PostEnvelope(
            message="Post created successfully",
            post=PostOut.from_post(new_post, current_user),
        )


@router.put("/{post_id}", response_model=PostEnvelope)
def update_post(
    post_id: int,
    changes: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    with store_errors(db, "updating post"):
        post = get_post_or_404(db, post_id)
        require_author(post, current_user, "update")

        # Only fields present in the body are applied; an explicit null or
        # blank imageUrl removes the image.
        content = post.content
        image_url = post.image_url
        if "content" in changes.model_fields_set:
            content = changes.content or ""
        if "image_url" in changes.model_fields_set:
            image_url = changes.image_url or None
        if not content and not image_url:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NO_CONTENT_MESSAGE)

        post.content = content
        post.image_url = image_url
        post.touch()
        db.commit()
        return PostEnvelope(
            message="Post updated successfully",
            post=PostOut.from_post(get_post_or_404(db, post_id), current_user),
        )


@router.delete("/{post_id}", response_model=MessageOut)
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    with store_errors(db, "deleting post"):
        post = get_post_or_404(db, post_id)
        require_author(post, current_user, "delete")
        db.delete(post)
        db.commit()
        logger.info("User %s deleted post %s", current_user.id, post_id)
        return MessageOut(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=LikeOut)
def like_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    with store_errors(db, "liking post"):
        post = get_post_or_404(db, post_id)
        like = (
            db.query(Like)
            .filter(Like.post_id == post.id, Like.user_id == current_user.id)
            .first()
        )
        if like:
            db.delete(like)
            liked = False
        else:
            db.add(Like(post_id=post.id, user_id=current_user.id))
            liked = True
        post.touch()
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request inserted the same like first.
            db.rollback()
            liked = True

        if liked:
            return LikeOut(message="Post liked successfully", liked=True)
        return LikeOut(message="Post unliked successfully", liked=False)


@router.post("/{post_id}/comment", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
def create_comment(
    post_id: int,
    comment: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(authenticate_token),
):
    if not comment.content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Comment content is required"
        )

    with store_errors(db, "adding comment"):
        post = get_post_or_404(db, post_id)
        post.comments.append(Comment(content=comment.content, user_id=current_user.id))
        post.touch()
        db.commit()
        return PostEnvelope(
            message="Comment added successfully",
            post=PostOut.from_post(get_post_or_404(db, post_id), current_user),
        )
