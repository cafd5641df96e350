# core.py
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal, InvalidOperation
import os
import sqlite3

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from loguru import logger
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import validates
from werkzeug.security import check_password_hash, generate_password_hash

from errors import PersistenceError, ValidationError, register_error_handlers

# --- DB handle (imported by blueprints and services) ---
db = SQLAlchemy()

# --- Constants shared across modules ---
ORDER_STATUSES = ("Pending", "Processing", "Shipped", "Delivered", "Cancelled")
USER_ROLES = ("User", "Admin")
MONEY = Decimal("0.01")


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# --- Models ---
class Category(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    # casefold() of name; SQLite lower() only folds ASCII.
    name_key = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(300), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_date = db.Column(db.DateTime, nullable=False, default=datetime.now)

    @validates("name")
    def _key_name(self, key, name):
        self.name_key = name.casefold()
        return name


class Book(db.Model):
    __table_args__ = (db.CheckConstraint("stock >= 0", name="ck_book_stock_non_negative"),)

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    author = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    image_url = db.Column(db.String(300), nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_date = db.Column(db.DateTime, nullable=False, default=datetime.now)
    category_id = db.Column(
        db.Integer, db.ForeignKey("category.id", ondelete="RESTRICT"), nullable=False, index=True
    )


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    email_key = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(40), nullable=True)
    address = db.Column(db.Text, nullable=True)
    role = db.Column(db.String(20), nullable=False, default="User")
    created_date = db.Column(db.DateTime, nullable=False, default=datetime.now)

    @validates("email")
    def _key_email(self, key, email):
        self.email_key = email.casefold()
        return email

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Order(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="Pending")
    order_date = db.Column(db.DateTime, nullable=False, default=datetime.now)
    shipping_address = db.Column(db.Text, nullable=True)

    # Parent -> children only; items never point back at the Order object.
    items = db.relationship(
        "OrderItem", cascade="all, delete-orphan", order_by="OrderItem.id", lazy="selectin"
    )


class OrderItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer, db.ForeignKey("order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    book_id = db.Column(
        db.Integer, db.ForeignKey("book.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)


class Favorite(db.Model):
    __table_args__ = (db.UniqueConstraint("user_id", "book_id", name="uq_favorite_user_book"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    book_id = db.Column(db.Integer, db.ForeignKey("book.id", ondelete="CASCADE"), nullable=False)
    created_date = db.Column(db.DateTime, nullable=False, default=datetime.now)


# --- Helpers ---
def to_int(value, field):
    # JSON numbers like 1.5 are rejected rather than truncated.
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be an integer.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer.")


def to_money(value, field):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a decimal number.")
    if value is None or isinstance(value, bool) or not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal number.")
    return amount.quantize(MONEY)


def blank(value):
    """Trimmed text, or None for missing/empty input."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def iso(dt):
    return dt.isoformat() if dt else None


@contextmanager
def unit_of_work():
    """Commit everything staged inside the block, or nothing.

    Any exception rolls the session back and propagates; storage failures
    surface as PersistenceError.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Unit of work failed")
        raise PersistenceError(str(exc)) from exc
    except Exception:
        db.session.rollback()
        raise


def seed_if_empty(admin_email="admin@bookstore.com", admin_password="admin123"):
    """Seed categories, books and the two demo accounts on first run."""
    if Category.query.count() > 0:
        return
    categories = [
        Category(name="Roman", description="Roman kitapları"),
        Category(name="Bilim Kurgu", description="Bilim kurgu kitapları"),
        Category(name="Tarih", description="Tarih kitapları"),
        Category(name="Felsefe", description="Felsefe kitapları"),
    ]
    db.session.add_all(categories)
    db.session.flush()
    roman, scifi, history = categories[0], categories[1], categories[2]
    books = [
        {"title": "Suç ve Ceza", "author": "Fyodor Dostoyevski", "price": Decimal("45.50"), "stock": 10,
         "description": "Klasik Rus edebiyatının önemli eserlerinden biri.", "category_id": roman.id},
        {"title": "Dune", "author": "Frank Herbert", "price": Decimal("65.00"), "stock": 15,
         "description": "Bilim kurgu edebiyatının başyapıtlarından biri.", "category_id": scifi.id},
        {"title": "Sapiens", "author": "Yuval Noah Harari", "price": Decimal("55.75"), "stock": 8,
         "description": "İnsanlığın tarihini anlatan etkileyici bir eser.", "category_id": history.id},
    ]
    for b in books:
        db.session.add(Book(**b))

    admin = User(first_name="Admin", last_name="User", email=admin_email, role="Admin")
    admin.set_password(admin_password)
    customer = User(first_name="Test", last_name="User", email="user@bookstore.com", role="User")
    customer.set_password("user123")
    db.session.add_all([admin, customer])
    db.session.commit()
    logger.info("Seeded {} categories and {} books", len(categories), len(books))


def create_app(config=None):
    app = Flask(__name__)

    # --- Config ---
    BASE_DIR = os.path.abspath(os.path.dirname(__file__))
    DB_PATH = os.path.join(BASE_DIR, "bookstore.db")
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["API_BASE_URL"] = os.environ.get("API_BASE_URL", "http://localhost:5000/api")
    app.config["API_TIMEOUT"] = float(os.environ.get("API_TIMEOUT", "30"))
    app.config["API_CLIENT_TRANSPORT"] = None
    app.config["STORE_CUSTOMER_ID"] = int(os.environ.get("STORE_CUSTOMER_ID", "2"))
    app.config["SEED_DATABASE"] = True
    app.config["ADMIN_EMAIL"] = os.environ.get("ADMIN_EMAIL", "admin@bookstore.com")
    app.config["ADMIN_PASSWORD"] = os.environ.get("ADMIN_PASSWORD", "admin123")
    if config:
        app.config.update(config)

    db.init_app(app)
    register_error_handlers(app)

    from api_client import close_api_client
    app.teardown_appcontext(close_api_client)

    # Register blueprints (import inside to avoid circular imports)
    from api import api_bp
    from shop import shop_bp
    from admin import admin_bp
    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(shop_bp)          # storefront at /
    app.register_blueprint(admin_bp, url_prefix="/admin")

    # Ensure tables exist at startup
    with app.app_context():
        db.create_all()
        if app.config["SEED_DATABASE"]:
            seed_if_empty(app.config["ADMIN_EMAIL"], app.config["ADMIN_PASSWORD"])

    logger.info("Bookstore app created")
    return app
