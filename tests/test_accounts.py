"""User registration, login and favorites."""
import pytest

import accounts
from core import db, User
from errors import AuthenticationError, ConflictError, NotFoundError, ValidationError


def user_data(**overrides):
    data = {
        "firstName": "Ayşe",
        "lastName": "Yılmaz",
        "email": "ayse@example.com",
        "password": "s3cret",
    }
    data.update(overrides)
    return data


def test_register_hashes_password(ctx):
    user = accounts.register_user(user_data())
    assert user["role"] == "User"
    assert "password" not in user and "passwordHash" not in user

    stored = db.session.get(User, user["id"])
    assert stored.password_hash != "s3cret"
    assert stored.check_password("s3cret")


def test_register_duplicate_email(ctx):
    with pytest.raises(ConflictError):
        accounts.register_user(user_data(email="USER@example.com"))


def test_register_duplicate_email_non_ascii(ctx):
    accounts.register_user(user_data(email="özge@example.com"))
    with pytest.raises(ConflictError):
        accounts.register_user(user_data(email="ÖZGE@example.com"))
    assert accounts.authenticate("Özge@Example.com", "s3cret")["email"] == "özge@example.com"


@pytest.mark.parametrize("overrides", [
    {"firstName": ""},
    {"email": "not-an-email"},
    {"password": "   "},
    {"role": "Superuser"},
])
def test_register_validation(ctx, overrides):
    with pytest.raises(ValidationError):
        accounts.register_user(user_data(**overrides))


def test_authenticate(ctx):
    user = accounts.authenticate("admin@example.com", "admin-pass")
    assert user["id"] == ctx.admin
    assert user["role"] == "Admin"


@pytest.mark.parametrize("email, password", [
    ("admin@example.com", "wrong"),
    ("nobody@example.com", "admin-pass"),
    (None, None),
])
def test_authenticate_rejects_bad_credentials(ctx, email, password):
    with pytest.raises(AuthenticationError):
        accounts.authenticate(email, password)


def test_get_user(ctx):
    assert accounts.get_user(ctx.customer)["email"] == "user@example.com"
    with pytest.raises(NotFoundError):
        accounts.get_user(500)


def test_favorites(ctx):
    accounts.add_favorite(ctx.customer, ctx.dune)
    accounts.add_favorite(ctx.customer, ctx.crime)
    assert {f["bookId"] for f in accounts.list_favorites(ctx.customer)} == {ctx.dune, ctx.crime}

    with pytest.raises(ConflictError):
        accounts.add_favorite(ctx.customer, ctx.dune)

    accounts.remove_favorite(ctx.customer, ctx.dune)
    assert [f["bookId"] for f in accounts.list_favorites(ctx.customer)] == [ctx.crime]
    with pytest.raises(NotFoundError):
        accounts.remove_favorite(ctx.customer, ctx.dune)


def test_favorite_unknown_book(ctx):
    with pytest.raises(NotFoundError):
        accounts.add_favorite(ctx.customer, 9999)
