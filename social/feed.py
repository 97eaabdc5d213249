"""
================================================================================
HEARTH - FEED & VISIBILITY
================================================================================

@file        feed.py
@description Post visibility rules, feed listing, comments and likes

VISIBILITY RULES
================================================================================
    public  : every authenticated viewer
    friends : the owner and users with an accepted friend edge (either way)
    private : the owner only

can_view() applies the rules to one post; visible_posts_filter() expresses
the same rules as a single ORM filter for listings. Both must agree.

FEED
================================================================================
The feed is the union of
    - the viewer's own posts,
    - friends' posts that are public or friends-only,
    - everyone's public posts,
newest first, paginated by page number. A page past the end is empty.

LIKES
================================================================================
PostLike rows are the source of truth; Post.like_count follows them inside
the same transaction. Liking twice restores the original state.

================================================================================
"""

import logging

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Prefetch, Q

from .errors import BadRequest, Forbidden, NotFound
from .friends import are_friends, friends_filter
from .models import Attachment, Comment, Post, PostLike
from .uploads import IMAGE_FOLDER, remove_file, store_upload, validate_image

logger = logging.getLogger(__name__)


# ============================================================================
# VISIBILITY
# ============================================================================

def can_view(viewer, post):
    if post.user_id == viewer.pk:
        return True
    if post.visibility == Post.PUBLIC:
        return True
    if post.visibility == Post.FRIENDS:
        return are_friends(viewer, post.user_id)
    return False


def visible_posts_filter(viewer):
    """Q object selecting exactly the posts can_view() allows."""
    return (
        Q(user=viewer)
        | Q(visibility=Post.PUBLIC)
        | (friends_filter(viewer, field='user') & Q(visibility=Post.FRIENDS))
    )


def _post_queryset():
    return Post.objects.select_related('user').prefetch_related(
        'attachments',
        Prefetch('comments', queryset=Comment.objects.select_related('user')),
    )


def liked_post_ids(viewer, posts):
    return set(
        PostLike.objects.filter(user=viewer, post__in=posts).values_list('post_id', flat=True)
    )


def _get_post(post_id):
    post = _post_queryset().filter(pk=post_id).first()
    if post is None:
        raise NotFound("Post not found")
    return post


def _get_own_post(owner, post_id, action):
    post = _get_post(post_id)
    if post.user_id != owner.pk:
        raise Forbidden(f"You don't have permission to {action} this post")
    return post


# ============================================================================
# LISTINGS
# ============================================================================

def list_feed(viewer, page=1, per_page=None):
    """
    One page of the viewer's feed.

    Returns:
        dict: posts, liked_ids, pagination (currentPage, totalPages,
        totalPosts, postsPerPage, hasMore)
    """
    per_page = per_page or settings.FEED_PAGE_SIZE
    page = page if isinstance(page, int) and page >= 1 else 1

    posts = _post_queryset().filter(visible_posts_filter(viewer)).order_by('-created_at', '-id')
    paginator = Paginator(posts, per_page)

    try:
        page_posts = list(paginator.page(page).object_list)
    except EmptyPage:
        page_posts = []

    total_posts = paginator.count
    total_pages = -(-total_posts // per_page)

    return {
        'posts': page_posts,
        'liked_ids': liked_post_ids(viewer, page_posts),
        'pagination': {
            'currentPage': page,
            'totalPages': total_pages,
            'totalPosts': total_posts,
            'postsPerPage': per_page,
            'hasMore': page < total_pages,
        },
    }


def posts_by(viewer, owner):
    """Posts of one author that the viewer may see, newest first."""
    posts = _post_queryset().filter(user=owner)
    if viewer.pk != owner.pk:
        allowed = [Post.PUBLIC]
        if are_friends(viewer, owner):
            allowed.append(Post.FRIENDS)
        posts = posts.filter(visibility__in=allowed)
    return list(posts.order_by('-created_at', '-id'))


def get_post(viewer, post_id):
    post = _get_post(post_id)
    if not can_view(viewer, post):
        raise Forbidden("You don't have permission to view this post")
    return post


# ============================================================================
# POSTS
# ============================================================================

def create_post(owner, text, visibility=None, uploads=()):
    """
    Create a post with up to MAX_POST_ATTACHMENTS images.

    All uploads are validated before anything is written. Storage or insert
    failures of single attachments are logged and skipped; the post itself
    still commits.
    """
    text = text.strip() if isinstance(text, str) else ''
    if not text:
        raise BadRequest("Text is required for a post")

    uploads = list(uploads)
    if len(uploads) > settings.MAX_POST_ATTACHMENTS:
        raise BadRequest(f"Maximum {settings.MAX_POST_ATTACHMENTS} images allowed per post")
    for upload in uploads:
        validate_image(upload)

    visibility = Post.normalize_visibility(visibility) or Post.PUBLIC

    with transaction.atomic():
        post = Post.objects.create(user=owner, text=text, visibility=visibility)

        for upload in uploads:
            path = None
            try:
                path = store_upload(upload, IMAGE_FOLDER)
                with transaction.atomic():
                    Attachment.objects.create(
                        post=post,
                        owner=owner,
                        file=path,
                        mime_type=upload.content_type or '',
                        size_bytes=upload.size,
                    )
            except (DatabaseError, OSError):
                logger.exception(f"Skipping attachment {upload.name} for post {post.pk}")
                if path:
                    remove_file(path)

    logger.info(f"{owner.username} created post {post.pk} ({visibility})")
    return _get_post(post.pk)


def update_post(owner, post_id, text):
    text = text.strip() if isinstance(text, str) else ''
    if not text:
        raise BadRequest("Text is required for a post")

    post = _get_own_post(owner, post_id, "edit")
    post.text = text
    post.save(update_fields=['text', 'updated_at'])
    return post


def set_visibility(owner, post_id, visibility):
    value = Post.normalize_visibility(visibility)
    if value is None:
        raise BadRequest("Invalid visibility option")

    post = _get_own_post(owner, post_id, "edit")
    post.visibility = value
    post.save(update_fields=['visibility', 'updated_at'])
    return post


def delete_post(owner, post_id):
    """
    Delete a post with its comments, likes and attachments.

    Rows go first; attachment files are removed afterwards, best-effort.

    Returns:
        int: Number of files removed
    """
    post = _get_own_post(owner, post_id, "delete")
    paths = [attachment.file.name for attachment in post.attachments.all()]

    with transaction.atomic():
        post.delete()

    removed = sum(1 for path in paths if remove_file(path))
    logger.info(f"{owner.username} deleted post {post_id} ({removed}/{len(paths)} files removed)")
    return removed


# ============================================================================
# COMMENTS
# ============================================================================

def add_comment(viewer, post_id, text):
    text = text.strip() if isinstance(text, str) else ''
    if not text:
        raise BadRequest("Comment text is required")

    post = _get_post(post_id)
    if not can_view(viewer, post):
        raise Forbidden("You don't have permission to comment on this post")

    return Comment.objects.create(post=post, user=viewer, text=text)


def delete_comment(user, post_id, comment_id):
    """The comment's author or the post's owner may delete a comment."""
    comment = Comment.objects.select_related('post').filter(pk=comment_id, post_id=post_id).first()
    if comment is None:
        raise NotFound("Comment not found")

    if user.pk not in (comment.user_id, comment.post.user_id):
        raise Forbidden("You don't have permission to delete this comment")

    comment.delete()


# ============================================================================
# LIKES
# ============================================================================

def toggle_like(user, post_id):
    """
    Like or unlike a post.

    Returns:
        dict: liked (state after the call), likes (current count)
    """
    post = _get_post(post_id)
    if not can_view(viewer=user, post=post):
        raise Forbidden("You don't have permission to view this post")

    with transaction.atomic():
        deleted, _ = PostLike.objects.filter(post=post, user=user).delete()
        if deleted:
            Post.objects.filter(pk=post.pk, like_count__gt=0).update(like_count=F('like_count') - 1)
            liked = False
        else:
            try:
                with transaction.atomic():
                    PostLike.objects.create(post=post, user=user)
            except IntegrityError:
                # Same user liked concurrently; their row already counts
                liked = True
            else:
                Post.objects.filter(pk=post.pk).update(like_count=F('like_count') + 1)
                liked = True

    post.refresh_from_db(fields=['like_count'])
    return {'liked': liked, 'likes': post.like_count}
