from app.extensions import db
from app.models.user import User


def _display(user):
    return {
        "id": user.id,
        "name": user.full_name or "",
        "email": user.email,
        "profile_image": user.profile_image,
        "bio": user.bio,
        "role": user.role,
    }


def display(user_id):
    """Public-facing profile fields used to annotate order responses."""
    if not user_id:
        return None
    user = db.session.get(User, user_id)
    return _display(user) if user else None
