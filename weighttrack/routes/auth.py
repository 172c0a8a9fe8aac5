import re
from datetime import datetime

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, url_for, flash
from flask_jwt_extended import create_access_token, jwt_required, set_access_cookies, unset_jwt_cookies

from weighttrack.extensions import db, limiter
from weighttrack.models import User
from weighttrack.schemas import UserSchema
from weighttrack.services.achievements import check_achievements
from weighttrack.utils.decorators import request_data, wants_json

auth_bp = Blueprint("auth", __name__)
user_schema = UserSchema(only=("id", "username", "name"))

EMAIL_REGEX = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
USERNAME_REGEX = r'^[A-Za-z0-9_]{3,50}$'


def validate_password(password):
    """Validate password strength."""
    min_length = current_app.config['PASSWORD_MIN_LENGTH']
    if len(password) < min_length:
        return False, f"Password must be at least {min_length} characters"
    if not re.search(r"[A-Za-z]", password):
        return False, "Password must contain at least one letter"
    if not re.search(r"\d", password):
        return False, "Password must contain at least one number"
    return True, "Password is valid"


def _fail(msg, status, template):
    if wants_json():
        return jsonify({"msg": msg}), status
    flash(msg, 'error')
    return render_template(template), status


def _logged_in_response(user, msg, status=200):
    access_token = create_access_token(
        identity=str(user.id),
        additional_claims={"is_admin": user.is_admin},
    )
    if wants_json():
        response = jsonify({"msg": msg, "user": user_schema.dump(user)})
        response.status_code = status
    else:
        flash(msg, 'success')
        response = redirect(request.args.get('next') or url_for('dashboard.dashboard'))
    set_access_cookies(response, access_token)
    return response


@auth_bp.route("/register", methods=["GET"])
def register_page():
    return render_template("auth/register.html")


@auth_bp.route("/register", methods=["POST"])
@limiter.limit(lambda: current_app.config['REGISTER_RATE_LIMIT'])
def register():
    data = request_data()
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not username or not email or not password:
        return _fail("All fields are required", 400, "auth/register.html")
    if not re.match(USERNAME_REGEX, username):
        return _fail("Username must be 3-50 letters, numbers or underscores", 400, "auth/register.html")
    if not re.match(EMAIL_REGEX, email):
        return _fail("Invalid email format", 400, "auth/register.html")

    is_valid, msg = validate_password(password)
    if not is_valid:
        return _fail(msg, 400, "auth/register.html")

    if User.query.filter((User.email == email) | (User.username == username)).first():
        return _fail("Email or username already in use", 400, "auth/register.html")

    user = User(email=email, username=username, display_name=(data.get("display_name") or None))
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("New user registered: %s", user.id)

    # Early Adopter is decided at signup
    check_achievements(user.id)
    return _logged_in_response(user, "Registered successfully", 201)


@auth_bp.route("/login", methods=["GET"])
def login_page():
    return render_template("auth/login.html")


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(lambda: current_app.config['LOGIN_RATE_LIMIT'])
def login_post():
    data = request_data()
    login = (data.get("email") or data.get("username") or "").strip()
    password = data.get("password") or ""

    if not login or not password:
        return _fail("Email and password are required", 400, "auth/login.html")

    user = User.query.filter((User.email == login.lower()) | (User.username == login)).first()
    if not user or not user.check_password(password):
        current_app.logger.info("Failed login for %s", login)
        return _fail("Invalid credentials", 401, "auth/login.html")

    if not user.is_active:
        return _fail("Account is disabled", 403, "auth/login.html")

    user.last_active = datetime.utcnow()
    db.session.commit()
    return _logged_in_response(user, "Login successful")


@auth_bp.route("/logout", methods=["POST"])
@jwt_required(optional=True)
def logout():
    if wants_json():
        response = jsonify({"msg": "Logout successful"})
    else:
        flash("You have been logged out", 'success')
        response = redirect(url_for('auth.login_page'))
    unset_jwt_cookies(response)
    return response
