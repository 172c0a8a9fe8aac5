"""Pushes to a user's Socket.IO room. A failed emit never fails the request."""
from flask import current_app

from weighttrack.extensions import socketio


def user_room(user_id):
    return f"user:{user_id}"


def notify_user(user_id, event, payload):
    try:
        socketio.emit(event, payload, to=user_room(user_id))
    except Exception:
        current_app.logger.warning("Socket emit %s to user %s failed", event, user_id, exc_info=True)


def announce_achievements(user_id, achievements):
    for achievement in achievements:
        notify_user(user_id, "achievement_unlocked", {
            "id": achievement.id,
            "name": achievement.name,
            "description": achievement.description,
            "icon": achievement.icon,
            "points": achievement.points,
        })
