"""Socket.IO connection handlers.

Sockets authenticate with the same JWT cookie as pages and join their
``user:<id>`` room.
"""
from flask import current_app, request
from flask_jwt_extended import decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_socketio import join_room
from jwt.exceptions import PyJWTError

from weighttrack.extensions import socketio
from weighttrack.services.notifications import user_room


def _identity_from_cookie():
    token = request.cookies.get(current_app.config['JWT_ACCESS_COOKIE_NAME'])
    if not token:
        return None
    try:
        return decode_token(token)["sub"]
    except (PyJWTError, JWTExtendedException):
        return None


@socketio.on('connect')
def handle_connect(auth=None):
    identity = _identity_from_cookie()
    if identity is None:
        return False
    join_room(user_room(identity))
    current_app.logger.debug("Socket connected for user %s", identity)
