from flask import Blueprint, render_template, redirect, url_for
from flask_jwt_extended import jwt_required, current_user

home_bp = Blueprint('home', __name__)


@home_bp.route('/')
@jwt_required(optional=True)
def index():
    if current_user:
        return redirect(url_for('dashboard.dashboard'))
    return render_template('home.html')


@home_bp.route('/home')
def home():
    return render_template('home.html')
