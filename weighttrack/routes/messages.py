from flask import Blueprint, abort, flash, jsonify, redirect, render_template, url_for
from flask_jwt_extended import jwt_required, current_user
from sqlalchemy import and_, func, or_

from weighttrack.extensions import db
from weighttrack.models import Message, User
from weighttrack.schemas import MessageSchema
from weighttrack.services.notifications import notify_user
from weighttrack.utils.decorators import request_data, wants_json

messages_bp = Blueprint("messages", __name__)
messages_schema = MessageSchema(many=True)
message_schema = MessageSchema()

MAX_MESSAGE_LENGTH = 2000


def _conversation_filter(user_id, contact_id):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == contact_id),
        and_(Message.sender_id == contact_id, Message.receiver_id == user_id),
    )


def _mark_read(contact_id):
    """Mark everything ``contact_id`` sent to the current user as read. Returns the count."""
    updated = (
        Message.query.filter_by(sender_id=contact_id, receiver_id=current_user.id, is_read=False)
        .update({Message.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    if updated:
        notify_user(contact_id, "messages_read", {"reader_id": current_user.id, "count": updated})
    return updated


@messages_bp.route("/", methods=["GET"])
@jwt_required()
def index():
    me = current_user.id
    sent_to = db.session.query(Message.receiver_id).filter(Message.sender_id == me)
    received_from = db.session.query(Message.sender_id).filter(Message.receiver_id == me)
    contact_ids = {row[0] for row in sent_to.union(received_from).all()}
    contact_ids.discard(me)

    unread = dict(
        db.session.query(Message.sender_id, func.count(Message.id))
        .filter(Message.receiver_id == me, Message.is_read.is_(False))
        .group_by(Message.sender_id)
        .all()
    )

    chats = []
    for contact in User.query.filter(User.id.in_(contact_ids)).all():
        last_message = (
            Message.query.filter(_conversation_filter(me, contact.id))
            .order_by(Message.sent_at.desc(), Message.id.desc())
            .first()
        )
        chats.append({
            "contact": contact,
            "last_message": last_message,
            "unread": unread.get(contact.id, 0),
        })
    chats.sort(key=lambda chat: chat["last_message"].sent_at, reverse=True)

    if wants_json():
        return jsonify([
            {
                "id": chat["contact"].id,
                "name": chat["contact"].name,
                "last_message": chat["last_message"].content,
                "last_message_time": chat["last_message"].sent_at.isoformat(),
                "unread": chat["unread"],
            }
            for chat in chats
        ])
    return render_template("messages/index.html", chats=chats)


@messages_bp.route("/<int:contact_id>", methods=["GET"])
@jwt_required()
def conversation(contact_id):
    contact = db.session.get(User, contact_id)
    if contact is None or contact.id == current_user.id:
        abort(404)

    messages = (
        Message.query.filter(_conversation_filter(current_user.id, contact_id))
        .order_by(Message.sent_at.asc(), Message.id.asc())
        .all()
    )
    _mark_read(contact_id)

    if wants_json():
        return jsonify(messages_schema.dump(messages))
    return render_template("messages/conversation.html", contact=contact, messages=messages)


@messages_bp.route("/send", methods=["POST"])
@jwt_required()
def send():
    data = request_data()
    content = (data.get("content") or "").strip()
    try:
        receiver_id = int(data.get("receiver_id") or 0)
    except (TypeError, ValueError):
        receiver_id = 0

    if not receiver_id or not content:
        return jsonify({"success": False, "msg": "Receiver ID and content are required"}), 400
    if len(content) > MAX_MESSAGE_LENGTH:
        return jsonify({"success": False, "msg": "Message is too long"}), 400

    receiver = db.session.get(User, receiver_id)
    if receiver is None or not receiver.is_active or receiver.id == current_user.id:
        return jsonify({"success": False, "msg": "Receiver not found or inactive"}), 404

    message = Message(sender_id=current_user.id, receiver_id=receiver.id, content=content)
    db.session.add(message)
    db.session.commit()

    payload = message_schema.dump(message)
    notify_user(receiver.id, "new_message", {**payload, "sender_name": current_user.name})

    if wants_json():
        return jsonify({"success": True, "msg": "Message sent successfully", "message": payload}), 201
    flash("Message sent", 'success')
    return redirect(url_for('messages.conversation', contact_id=receiver.id))


@messages_bp.route("/<int:contact_id>/read", methods=["POST"])
@jwt_required()
def mark_read(contact_id):
    count = _mark_read(contact_id)
    return jsonify({"success": True, "marked": count})


@messages_bp.route("/unread-count", methods=["GET"])
@jwt_required()
def unread_count():
    count = Message.query.filter_by(receiver_id=current_user.id, is_read=False).count()
    return jsonify({"count": count})
