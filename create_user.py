import os
import secrets

from weighttrack import create_app
from weighttrack.extensions import db
from weighttrack.models import User

app = create_app()

with app.app_context():
    email = os.environ.get("ADMIN_EMAIL", "admin@example.com")
    username = os.environ.get("ADMIN_USERNAME", "admin")
    password = os.environ.get("ADMIN_PASSWORD") or secrets.token_urlsafe(12)

    existing_user = User.query.filter((User.email == email) | (User.username == username)).first()
    if existing_user:
        print(f"User '{existing_user.username}' already exists.")
    else:
        user = User(email=email, username=username, display_name="Site Admin", is_admin=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()

        print("Admin created successfully!")
        print(f"Email: {email}")
        print(f"Password: {password}")
