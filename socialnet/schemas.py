from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for JSON bodies: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests

class UserCreate(CamelModel):
    username: constr(strip_whitespace=True, min_length=3, max_length=20)
    email: EmailStr
    password: constr(min_length=6, max_length=128)
    first_name: Optional[constr(strip_whitespace=True, max_length=50)] = None
    last_name: Optional[constr(strip_whitespace=True, max_length=50)] = None
    bio: Optional[constr(max_length=500)] = ""

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return value.strip().lower()


class ProfileUpdate(CamelModel):
    first_name: Optional[constr(strip_whitespace=True, max_length=50)] = None
    last_name: Optional[constr(strip_whitespace=True, max_length=50)] = None
    bio: Optional[constr(max_length=500)] = None


class PostCreate(CamelModel):
    content: Optional[constr(strip_whitespace=True, max_length=1000)] = None
    image_url: Optional[constr(strip_whitespace=True, max_length=2048)] = None


class PostUpdate(PostCreate):
    """Same fields as PostCreate; fields left out of the body are not touched."""


class CommentCreate(CamelModel):
    content: Optional[constr(strip_whitespace=True, max_length=500)] = None


# Responses

class UserSummary(CamelModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def from_user(cls, user):
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
        )


class FollowUser(UserSummary):
    bio: str = ""

    @classmethod
    def from_user(cls, user):
        return cls(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio or "",
        )


class UserOut(CamelModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: str = ""
    followers: List[int] = []
    following: List[int] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user):
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            bio=user.bio or "",
            followers=[edge.follower_id for edge in user.follower_edges],
            following=[edge.followed_id for edge in user.following_edges],
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserProfile(UserOut):
    followers: List[UserSummary] = []
    following: List[UserSummary] = []

    @classmethod
    def from_user(cls, user):
        base = UserOut.from_user(user)
        return cls(
            **base.model_dump(exclude={"followers", "following"}),
            followers=[UserSummary.from_user(u) for u in user.followers],
            following=[UserSummary.from_user(u) for u in user.following],
        )


class CommentOut(CamelModel):
    id: int
    user: UserSummary
    content: str
    created_at: datetime

    @classmethod
    def from_comment(cls, comment):
        return cls(
            id=comment.id,
            user=UserSummary.from_user(comment.user),
            content=comment.content,
            created_at=comment.created_at,
        )


class PostOut(CamelModel):
    id: int
    author: UserSummary
    content: str
    image_url: Optional[str] = None
    likes: List[int] = []
    comments: List[CommentOut] = []
    like_count: int = 0
    comment_count: int = 0
    liked_by_me: Optional[bool] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post, viewer=None):
        likes = [like.user_id for like in post.likes]
        return cls(
            id=post.id,
            author=UserSummary.from_user(post.author),
            content=post.content or "",
            image_url=post.image_url,
            likes=likes,
            comments=[CommentOut.from_comment(c) for c in post.comments],
            like_count=len(likes),
            comment_count=len(post.comments),
            liked_by_me=(viewer.id in likes) if viewer is not None else None,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class MessageOut(BaseModel):
    message: str


class PostEnvelope(MessageOut):
    post: PostOut


class PostPage(CamelModel):
    posts: List[PostOut]
    current_page: int
    total_pages: int
    total_posts: int


class LikeOut(MessageOut):
    liked: bool


class UserPage(CamelModel):
    users: List[UserOut]
    current_page: int
    total_pages: int
    total_users: int


class UserWithPosts(BaseModel):
    user: UserProfile
    posts: List[PostOut]


class UserList(BaseModel):
    users: List[UserOut]


class FollowOut(MessageOut):
    following: bool


class FollowersOut(BaseModel):
    followers: List[FollowUser]


class FollowingOut(BaseModel):
    following: List[FollowUser]


class UserEnvelope(BaseModel):
    user: UserOut


class UserMessageEnvelope(MessageOut):
    user: UserOut


class RegisterOut(MessageOut):
    token: str
    user: UserOut


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class UploadOut(BaseModel):
    url: str
    public_id: str = Field(..., description="Opaque storage identifier")
