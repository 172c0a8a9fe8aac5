import os
from datetime import datetime, timezone
from uuid import uuid4

from flask import (
    Blueprint, abort, current_app, flash, jsonify, redirect, render_template,
    request, send_from_directory, url_for,
)
from flask_jwt_extended import jwt_required, current_user
from werkzeug.utils import secure_filename

from weighttrack.extensions import db
from weighttrack.models import ProgressPhoto, WeightEntry
from weighttrack.models.weight_entry import VISIBILITY_CHOICES
from weighttrack.schemas import WeightEntrySchema
from weighttrack.services.achievements import check_achievements
from weighttrack.utils.decorators import request_data, wants_json
from domain.challenges.services import refresh_user_challenges
from domain.weights.history import all_entries, sync_current_weight

weight_bp = Blueprint("weight", __name__)
entry_schema = WeightEntrySchema()

# field -> (label, min, max)
BODY_FIELDS = {
    "body_fat_percentage": ("Body fat percentage", 0, 100),
    "muscle_mass": ("Muscle mass", 0, 500),
    "water_percentage": ("Water percentage", 0, 100),
}


def parse_entry(data):
    """Validate a weight entry form. Returns (values, errors)."""
    errors = {}
    values = {}

    try:
        weight = float(data.get("weight", ""))
        if not 0.1 <= weight <= 1000:
            raise ValueError
        values["weight"] = weight
    except (TypeError, ValueError):
        errors["weight"] = "Weight must be between 0.1 and 1000"

    recorded_at = data.get("recorded_at")
    if recorded_at:
        try:
            parsed = datetime.fromisoformat(recorded_at)
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            values["recorded_at"] = parsed
        except ValueError:
            errors["recorded_at"] = "Invalid date"
    else:
        values["recorded_at"] = datetime.utcnow()

    for field, (label, low, high) in BODY_FIELDS.items():
        raw = data.get(field)
        if raw in (None, ""):
            values[field] = None
            continue
        try:
            value = float(raw)
            if not low <= value <= high:
                raise ValueError
            values[field] = value
        except (TypeError, ValueError):
            errors[field] = f"{label} must be between {low} and {high}"

    notes = (data.get("notes") or "").strip()
    if len(notes) > 1000:
        errors["notes"] = "Notes must be less than 1000 characters"
    values["notes"] = notes or None

    visibility = data.get("visibility") or "PRIVATE"
    if visibility not in VISIBILITY_CHOICES:
        errors["visibility"] = "Invalid visibility"
    values["visibility"] = visibility

    values["activity_logged"] = str(data.get("activity_logged", "")).lower() in ("1", "true", "on", "yes")
    return values, errors


def _allowed_photo(filename):
    ext = os.path.splitext(filename)[1].lower()
    return ext in current_app.config['UPLOAD_EXTENSIONS']


def save_photos(entry, files, visibility):
    """Store uploaded images for ``entry`` and append ProgressPhoto rows."""
    files = [f for f in files if f and f.filename and _allowed_photo(f.filename)]
    files = files[:current_app.config['MAX_PHOTOS_PER_UPLOAD']]
    if not files:
        return []

    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    next_order = max((p.sort_order for p in entry.photos), default=-1) + 1

    photos = []
    for index, file in enumerate(files):
        filename = secure_filename(f"{entry.user_id}_{uuid4().hex}_{file.filename}")
        file_path = os.path.join(folder, filename)
        file.save(file_path)
        photo = ProgressPhoto(
            url=url_for('weight.uploaded_photo', filename=filename),
            file_path=file_path,
            visibility=visibility,
            sort_order=next_order + index,
        )
        entry.photos.append(photo)
        photos.append(photo)
    return photos


def _remove_file(path):
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError:
            current_app.logger.warning("Could not delete photo file %s", path)


def _own_entry_or_404(entry_id):
    entry = db.session.get(WeightEntry, entry_id)
    if entry is None or entry.user_id != current_user.id:
        abort(404)
    return entry


def _own_photo_or_404(photo_id):
    photo = db.session.get(ProgressPhoto, photo_id)
    if photo is None or photo.entry.user_id != current_user.id:
        abort(404)
    return photo


def _after_history_change():
    """Entries changed: refresh cached weight, challenge progress and achievements."""
    sync_current_weight(db.session, current_user)
    refresh_user_challenges(db.session, current_user.id)
    db.session.commit()
    return check_achievements(current_user.id)


@weight_bp.route("/", methods=["GET"])
@jwt_required()
def index():
    entries = all_entries(db.session, current_user.id)
    weights = [e.weight for e in entries]
    stats = {
        "total_entries": len(entries),
        "start_weight": weights[0] if weights else None,
        "current_weight": weights[-1] if weights else None,
        "lowest_weight": min(weights) if weights else None,
        "highest_weight": max(weights) if weights else None,
        "total_change": weights[-1] - weights[0] if len(weights) > 1 else None,
    }
    chart_data = [
        {"date": e.recorded_at.strftime("%Y-%m-%d"), "weight": e.weight}
        for e in entries
    ]

    if wants_json():
        return jsonify({
            "entries": entry_schema.dump(list(reversed(entries)), many=True),
            "chart": chart_data,
            "stats": stats,
        })
    return render_template(
        "weight/index.html",
        entries=list(reversed(entries)),
        chart_data=chart_data,
        stats=stats,
        visibility_choices=VISIBILITY_CHOICES,
    )


@weight_bp.route("/log", methods=["GET"])
@jwt_required()
def log_form():
    entry = None
    entry_id = request.args.get("edit", type=int)
    if entry_id:
        entry = _own_entry_or_404(entry_id)
    return render_template("weight/log.html", entry=entry, errors={}, visibility_choices=VISIBILITY_CHOICES)


@weight_bp.route("/log", methods=["POST"])
@jwt_required()
def log_submit():
    data = request_data()
    entry_id = data.get("entry_id")
    entry = _own_entry_or_404(int(entry_id)) if entry_id else None

    values, errors = parse_entry(data)
    if errors:
        if wants_json():
            return jsonify({"success": False, "msg": "Invalid weight entry", "errors": errors}), 400
        return render_template(
            "weight/log.html", entry=entry, errors=errors, form=data,
            visibility_choices=VISIBILITY_CHOICES,
        ), 400

    if entry is None:
        entry = WeightEntry(user_id=current_user.id, **values)
        db.session.add(entry)
        msg = "Weight logged successfully!"
    else:
        for field, value in values.items():
            setattr(entry, field, value)
        msg = "Entry updated successfully!"
    db.session.flush()

    photo_visibility = data.get("photo_visibility") or values["visibility"]
    if photo_visibility not in VISIBILITY_CHOICES:
        photo_visibility = "PRIVATE"
    save_photos(entry, request.files.getlist("photos"), photo_visibility)

    unlocked = _after_history_change()
    current_app.logger.info("User %s saved weight entry %s", current_user.id, entry.id)

    if wants_json():
        return jsonify({
            "success": True,
            "msg": msg,
            "entry": entry_schema.dump(entry),
            "achievements": [a.name for a in unlocked],
        }), 201 if not entry_id else 200
    flash(msg, 'success')
    return redirect(url_for('weight.index'))


@weight_bp.route("/delete/<int:entry_id>", methods=["POST"])
@jwt_required()
def delete_entry(entry_id):
    entry = _own_entry_or_404(entry_id)
    paths = [p.file_path for p in entry.photos]
    db.session.delete(entry)
    db.session.flush()
    _after_history_change()
    for path in paths:
        _remove_file(path)

    if wants_json():
        return jsonify({"success": True, "msg": "Entry deleted successfully!"})
    flash("Entry deleted successfully!", 'success')
    return redirect(url_for('weight.index'))


@weight_bp.route("/photo/<int:entry_id>", methods=["POST"])
@jwt_required()
def add_photo(entry_id):
    entry = _own_entry_or_404(entry_id)
    visibility = request.form.get("photo_visibility") or "PRIVATE"
    if visibility not in VISIBILITY_CHOICES:
        visibility = "PRIVATE"

    photos = save_photos(entry, request.files.getlist("photos"), visibility)
    db.session.commit()
    check_achievements(current_user.id)

    if wants_json():
        return jsonify({"success": True, "added": len(photos)})
    flash("Photo added successfully!" if photos else "No valid photos uploaded", 'success' if photos else 'error')
    return redirect(url_for('weight.index'))


@weight_bp.route("/photo/<int:photo_id>/visibility", methods=["POST"])
@jwt_required()
def update_photo_visibility(photo_id):
    photo = _own_photo_or_404(photo_id)
    visibility = request_data().get("visibility")
    if visibility not in VISIBILITY_CHOICES:
        return jsonify({"success": False, "msg": "Invalid visibility"}), 400
    photo.visibility = visibility
    db.session.commit()
    return jsonify({"success": True, "visibility": visibility})


@weight_bp.route("/photo/<int:photo_id>/delete", methods=["POST"])
@jwt_required()
def delete_photo(photo_id):
    photo = _own_photo_or_404(photo_id)
    path = photo.file_path
    db.session.delete(photo)
    db.session.commit()
    _remove_file(path)
    return jsonify({"success": True})


@weight_bp.route("/uploads/<path:filename>", methods=["GET"])
@jwt_required()
def uploaded_photo(filename):
    photo = ProgressPhoto.query.filter(ProgressPhoto.url.like(f"%/{filename}")).first_or_404()
    owner_id = photo.entry.user_id
    if owner_id != current_user.id and photo.visibility == "PRIVATE":
        abort(404)
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
