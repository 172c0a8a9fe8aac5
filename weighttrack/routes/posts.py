from datetime import datetime

from flask import Blueprint, abort, flash, jsonify, redirect, render_template, url_for
from flask_jwt_extended import jwt_required, current_user

from weighttrack.extensions import db
from weighttrack.models import Comment, Post, PostLike
from weighttrack.services.achievements import check_achievements
from weighttrack.utils.decorators import request_data, team_member_required, wants_json
from domain.errors import ValidationError

posts_bp = Blueprint("posts", __name__)

MAX_POST_LENGTH = 5000
MAX_COMMENT_LENGTH = 2000


def _content(max_length):
    content = (request_data().get("content") or "").strip()
    if not content:
        raise ValidationError("Content is required", errors={"content": ["required"]})
    if len(content) > max_length:
        raise ValidationError(f"Content must be at most {max_length} characters",
                              errors={"content": ["too long"]})
    return content


def _visible_post_or_404(post_id):
    """The post, if it exists and the current user belongs to its team."""
    post = db.session.get(Post, post_id)
    if post is None or post.is_deleted:
        abort(404)
    membership = post.team.membership_for(current_user.id)
    if membership is None and not current_user.is_admin:
        abort(403)
    return post, membership


@posts_bp.route("/teams/<int:team_id>/posts", methods=["POST"])
@team_member_required
def create(team, membership):
    if membership is None:
        abort(403)
    post = Post(team_id=team.id, author_id=current_user.id, content=_content(MAX_POST_LENGTH))
    db.session.add(post)
    db.session.commit()
    check_achievements(current_user.id)

    if wants_json():
        return jsonify({"success": True, "msg": "Post created successfully", "post_id": post.id}), 201
    flash("Post created successfully", 'success')
    return redirect(url_for('teams.show', team_id=team.id))


@posts_bp.route("/posts/<int:post_id>", methods=["GET"])
@jwt_required()
def show(post_id):
    post, _ = _visible_post_or_404(post_id)
    comments = (
        post.comments.filter(Comment.deleted_at.is_(None))
        .order_by(Comment.created_at.asc())
        .all()
    )
    liked = post.likes.filter_by(user_id=current_user.id).first() is not None
    return render_template(
        "posts/show.html", post=post, comments=comments, liked=liked, like_count=post.likes.count(),
    )


@posts_bp.route("/posts/<int:post_id>/like", methods=["POST"])
@jwt_required()
def toggle_like(post_id):
    post, _ = _visible_post_or_404(post_id)
    existing = post.likes.filter_by(user_id=current_user.id).first()
    if existing:
        db.session.delete(existing)
        liked = False
    else:
        db.session.add(PostLike(post_id=post.id, user_id=current_user.id))
        liked = True
    db.session.commit()

    # Likes count towards the author's achievements
    if liked and post.author_id != current_user.id:
        check_achievements(post.author_id)

    return jsonify({
        "success": True,
        "msg": "Post liked" if liked else "Post unliked",
        "data": {"liked": liked, "count": post.likes.count()},
    })


@posts_bp.route("/posts/<int:post_id>/comments", methods=["POST"])
@jwt_required()
def add_comment(post_id):
    post, membership = _visible_post_or_404(post_id)
    if membership is None:
        abort(403)
    comment = Comment(post_id=post.id, author_id=current_user.id, content=_content(MAX_COMMENT_LENGTH))
    db.session.add(comment)
    db.session.commit()
    check_achievements(current_user.id)

    if wants_json():
        return jsonify({"success": True, "msg": "Comment added", "comment_id": comment.id}), 201
    return redirect(url_for('posts.show', post_id=post.id))


@posts_bp.route("/posts/<int:post_id>/delete", methods=["POST"])
@jwt_required()
def delete(post_id):
    post, membership = _visible_post_or_404(post_id)
    can_delete = (
        post.author_id == current_user.id
        or current_user.is_admin
        or (membership is not None and membership.can_manage)
    )
    if not can_delete:
        abort(403)
    post.deleted_at = datetime.utcnow()
    db.session.commit()

    if wants_json():
        return jsonify({"success": True, "msg": "Post deleted successfully"})
    flash("Post deleted successfully", 'success')
    return redirect(url_for('teams.show', team_id=post.team_id))
