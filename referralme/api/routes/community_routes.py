"""
Community Routes

POST /community/posts - Create a post
GET /community/posts - List active posts (filter by type/tag)
GET /community/posts/{post_id} - One post
DELETE /community/posts/{post_id} - Remove own post
POST /community/posts/{post_id}/like - Like a post
POST /community/posts/{post_id}/comments - Comment on a post
GET /community/posts/{post_id}/comments - Comments, oldest first
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import func, insert, select, update

from referralme.db.postgres import get_db_session, fetch_one, fetch_all
from referralme.db.schema import community_posts, post_comments, users
from referralme.core.auth import get_current_user
from referralme.schemas.schemas import (
    CommunityPostCreate, CommunityPostResponse, PostCommentCreate, PostCommentResponse,
    PostType, MessageResponse
)

router = APIRouter(prefix="/community", tags=["Community"])


def _author_name():
    return func.trim(func.coalesce(users.c.first_name, "") + " " + func.coalesce(users.c.last_name, "")).label("author_name")


def _posts_query():
    comment_count = (
        select(func.count(post_comments.c.id))
        .where(post_comments.c.post_id == community_posts.c.id)
        .scalar_subquery()
        .label("comment_count")
    )
    return (
        select(community_posts, _author_name(), comment_count)
        .select_from(community_posts.join(users, community_posts.c.author_id == users.c.id))
        .where(community_posts.c.is_active.is_(True))
    )


def _get_active_post(db, post_id: int) -> dict:
    post = fetch_one(db, _posts_query().where(community_posts.c.id == post_id))
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.post("/posts", response_model=CommunityPostResponse, status_code=201)
async def create_post(data: CommunityPostCreate, user: dict = Depends(get_current_user)):
    now = datetime.utcnow()
    with get_db_session() as db:
        result = db.execute(
            insert(community_posts).values(
                author_id=user["id"],
                title=data.title,
                content=data.content,
                type=data.type.value,
                tags=data.tags,
                likes=0,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )
        post = _get_active_post(db, result.inserted_primary_key[0])
    return CommunityPostResponse(**post)


@router.get("/posts", response_model=List[CommunityPostResponse])
async def list_posts(
    type: Optional[PostType] = Query(None),
    tag: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100)
):
    """Active posts, newest first."""
    query = _posts_query()
    if type:
        query = query.where(community_posts.c.type == type.value)

    with get_db_session() as db:
        posts = fetch_all(db, query.order_by(community_posts.c.created_at.desc(), community_posts.c.id.desc()))

    # Tags live in a JSON column
    if tag:
        tag = tag.strip().lower()
        posts = [p for p in posts if tag in (p["tags"] or [])]

    start = (page - 1) * page_size
    return [CommunityPostResponse(**p) for p in posts[start:start + page_size]]


@router.get("/posts/{post_id}", response_model=CommunityPostResponse)
async def get_post(post_id: int):
    with get_db_session() as db:
        post = _get_active_post(db, post_id)
    return CommunityPostResponse(**post)


@router.delete("/posts/{post_id}", response_model=MessageResponse)
async def delete_post(post_id: int, user: dict = Depends(get_current_user)):
    """Hide a post. Only its author can do this."""
    with get_db_session() as db:
        post = _get_active_post(db, post_id)
        if post["author_id"] != user["id"]:
            raise HTTPException(status_code=403, detail="Not your post")
        db.execute(
            update(community_posts)
            .where(community_posts.c.id == post_id)
            .values(is_active=False, updated_at=datetime.utcnow())
        )
    return MessageResponse(message="Post removed")


@router.post("/posts/{post_id}/like", response_model=CommunityPostResponse)
async def like_post(post_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _get_active_post(db, post_id)
        db.execute(
            update(community_posts)
            .where(community_posts.c.id == post_id)
            .values(likes=community_posts.c.likes + 1)
        )
        post = _get_active_post(db, post_id)
    return CommunityPostResponse(**post)


@router.post("/posts/{post_id}/comments", response_model=PostCommentResponse, status_code=201)
async def add_comment(post_id: int, data: PostCommentCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _get_active_post(db, post_id)
        result = db.execute(
            insert(post_comments).values(
                post_id=post_id,
                author_id=user["id"],
                content=data.content,
                created_at=datetime.utcnow(),
            )
        )
        comment = fetch_one(
            db,
            select(post_comments, _author_name())
            .select_from(post_comments.join(users, post_comments.c.author_id == users.c.id))
            .where(post_comments.c.id == result.inserted_primary_key[0])
        )
    return PostCommentResponse(**comment)


@router.get("/posts/{post_id}/comments", response_model=List[PostCommentResponse])
async def list_comments(post_id: int):
    with get_db_session() as db:
        _get_active_post(db, post_id)
        comments = fetch_all(
            db,
            select(post_comments, _author_name())
            .select_from(post_comments.join(users, post_comments.c.author_id == users.c.id))
            .where(post_comments.c.post_id == post_id)
            .order_by(post_comments.c.created_at, post_comments.c.id)
        )
    return [PostCommentResponse(**c) for c in comments]
