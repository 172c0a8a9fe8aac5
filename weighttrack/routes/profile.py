from flask import Blueprint, flash, jsonify, redirect, render_template, url_for
from flask_jwt_extended import jwt_required, current_user

from weighttrack.extensions import db
from weighttrack.schemas import UserSchema
from weighttrack.services.achievements import check_achievements
from weighttrack.utils.decorators import request_data, wants_json

profile_bp = Blueprint("profile", __name__)
profile_schema = UserSchema()


def parse_profile(data):
    """Validate the profile form. Returns (values, errors)."""
    values, errors = {}, {}

    display_name = (data.get("display_name") or "").strip()
    if len(display_name) > 150:
        errors["display_name"] = "Display name must be at most 150 characters"
    values["display_name"] = display_name or None

    bio = (data.get("bio") or "").strip()
    if len(bio) > 500:
        errors["bio"] = "Bio must be at most 500 characters"
    values["bio"] = bio or None

    avatar_url = (data.get("avatar_url") or "").strip()
    if avatar_url and not avatar_url.startswith(("http://", "https://", "/")):
        errors["avatar_url"] = "Avatar must be a URL"
    values["avatar_url"] = avatar_url or None

    unit_system = (data.get("unit_system") or "IMPERIAL").upper()
    if unit_system not in ("IMPERIAL", "METRIC"):
        errors["unit_system"] = "Invalid unit system"
    values["unit_system"] = unit_system

    for field, label, high in (("goal_weight", "Goal weight", 1000), ("height", "Height", 300)):
        raw = data.get(field)
        if raw in (None, ""):
            values[field] = None
            continue
        try:
            value = float(raw)
            if not 0 < value <= high:
                raise ValueError
            values[field] = value
        except (TypeError, ValueError):
            errors[field] = f"{label} must be between 0 and {high}"

    values["profile_public"] = str(data.get("profile_public", "")).lower() in ("1", "true", "on", "yes")
    return values, errors


@profile_bp.route("/profile", methods=["GET"])
@jwt_required()
def edit():
    return render_template("settings/profile.html", errors={})


@profile_bp.route("/profile", methods=["POST"])
@jwt_required()
def update():
    values, errors = parse_profile(request_data())
    if errors:
        if wants_json():
            return jsonify({"success": False, "msg": "Invalid profile", "errors": errors}), 400
        return render_template("settings/profile.html", errors=errors), 400

    for field, value in values.items():
        setattr(current_user, field, value)
    db.session.commit()
    unlocked = check_achievements(current_user.id)

    if wants_json():
        return jsonify({
            "success": True,
            "msg": "Profile updated",
            "user": profile_schema.dump(current_user),
            "achievements": [a.name for a in unlocked],
        })
    flash("Profile updated", 'success')
    return redirect(url_for('profile.edit'))
