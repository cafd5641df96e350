# accounts.py
"""User accounts, credential checks and favorites."""
from loguru import logger

from core import db, Book, Favorite, User, USER_ROLES, blank, iso, unit_of_work
from errors import AuthenticationError, ConflictError, NotFoundError, ValidationError


def user_projection(user):
    # Never includes password material.
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "phone": user.phone,
        "address": user.address,
        "role": user.role,
        "createdDate": iso(user.created_date),
    }


def _find_by_email(email):
    return User.query.filter_by(email_key=email.casefold()).first()


def register_user(data):
    first_name = blank(data.get("firstName"))
    last_name = blank(data.get("lastName"))
    email = blank(data.get("email"))
    password = data.get("password") or ""
    role = data.get("role") or "User"

    if not first_name or not last_name:
        raise ValidationError("First and last name are required.")
    if not email or "@" not in email:
        raise ValidationError("A valid email is required.")
    if not password.strip():
        raise ValidationError("Password is required.")
    if role not in USER_ROLES:
        raise ValidationError("Invalid role. Valid roles: " + ", ".join(USER_ROLES))
    if _find_by_email(email) is not None:
        raise ConflictError("A user with this email already exists.")

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=blank(data.get("phone")),
        address=blank(data.get("address")),
        role=role,
    )
    user.set_password(password)
    with unit_of_work() as session:
        session.add(user)
    logger.info("Registered user {} ({})", user.id, user.role)
    return user_projection(user)


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user_projection(user)


def authenticate(email, password):
    user = _find_by_email(email or "")
    if user is None or not user.check_password(password or ""):
        logger.warning("Failed login for {!r}", email)
        raise AuthenticationError("Invalid email or password.")
    return user_projection(user)


# --- Favorites ---
def add_favorite(user_id, book_id):
    with unit_of_work() as session:
        if session.get(User, user_id) is None:
            raise NotFoundError("User", user_id)
        if session.get(Book, book_id) is None:
            raise NotFoundError("Book", book_id)
        if Favorite.query.filter_by(user_id=user_id, book_id=book_id).first() is not None:
            raise ConflictError("Book is already in favorites.")
        favorite = Favorite(user_id=user_id, book_id=book_id)
        session.add(favorite)
    return {"id": favorite.id, "userId": user_id, "bookId": book_id, "createdDate": iso(favorite.created_date)}


def list_favorites(user_id):
    rows = (
        db.session.query(Favorite, Book)
        .join(Book, Favorite.book_id == Book.id)
        .filter(Favorite.user_id == user_id)
        .order_by(Favorite.created_date.desc(), Favorite.id.desc())
        .all()
    )
    return [
        {
            "id": f.id,
            "bookId": b.id,
            "title": b.title,
            "author": b.author,
            "price": b.price,
            "imageUrl": b.image_url,
            "createdDate": iso(f.created_date),
        }
        for f, b in rows
    ]


def remove_favorite(user_id, book_id):
    with unit_of_work() as session:
        favorite = Favorite.query.filter_by(user_id=user_id, book_id=book_id).first()
        if favorite is None:
            raise NotFoundError("Favorite", f"{user_id}/{book_id}")
        session.delete(favorite)
