from functools import wraps

from flask import abort, request
from flask_jwt_extended import current_user, jwt_required

from weighttrack.extensions import db
from weighttrack.models import Team


def wants_json():
    """True for XHR/fetch callers, which get JSON instead of a redirect."""
    if request.is_json:
        return True
    if request.headers.get("X-Requested-With") == "XMLHttpRequest":
        return True
    best = request.accept_mimetypes.best_match(["application/json", "text/html"])
    return best == "application/json" and request.accept_mimetypes[best] > request.accept_mimetypes["text/html"]


def request_data():
    """Body of the request whether it was posted as JSON or as a form."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def team_member_required(view_func):
    """Loads the team named by the ``team_id`` URL argument and checks membership.

    The view receives ``team`` and ``membership`` keyword arguments; site
    admins pass with ``membership=None``.
    """
    @wraps(view_func)
    @jwt_required()
    def wrapper(team_id, *args, **kwargs):
        team = db.get_or_404(Team, team_id)
        membership = team.membership_for(current_user.id)
        if membership is None and not current_user.is_admin:
            abort(403)
        kwargs['team'] = team
        kwargs['membership'] = membership
        return view_func(*args, **kwargs)
    return wrapper
