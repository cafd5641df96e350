# admin.py
from functools import wraps

from flask import Blueprint, abort, flash, jsonify, redirect, render_template, request, session, url_for
from loguru import logger

from api_client import get_api_client
from core import ORDER_STATUSES

admin_bp = Blueprint("admin", __name__)

RECENT_BOOKS = 5


def is_admin():
    return session.get("admin_id") is not None


def require_admin(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not is_admin():
            if request.method == "POST" and request.path.endswith("/delete"):
                return jsonify({"success": False, "message": "Not authorized."}), 403
            return redirect(url_for("admin.admin_login"))
        return view(*args, **kwargs)
    return wrapped


def book_from_form(book_id=None):
    data = {
        "title": request.form.get("title", "").strip(),
        "author": request.form.get("author", "").strip(),
        "description": request.form.get("description", "").strip() or None,
        "price": request.form.get("price", "").strip(),
        "imageUrl": request.form.get("imageUrl", "").strip() or None,
        "stock": request.form.get("stock", "0").strip() or "0",
        "isActive": "isActive" in request.form,
        "categoryId": request.form.get("categoryId", "0").strip() or "0",
    }
    if book_id is not None:
        data["id"] = book_id
    return data


def category_from_form(category_id=None):
    data = {
        "name": request.form.get("name", "").strip(),
        "description": request.form.get("description", "").strip() or None,
        "imageUrl": request.form.get("imageUrl", "").strip() or None,
        "isActive": "isActive" in request.form,
    }
    if category_id is not None:
        data["id"] = category_id
    return data


@admin_bp.route("/login", methods=["GET", "POST"])
def admin_login():
    if request.method == "POST":
        email = request.form.get("email", "").strip()
        pwd = request.form.get("password", "")
        user = get_api_client().authenticate(email, pwd)
        if user is not None and user["role"] == "Admin":
            session["admin_id"] = user["id"]
            session["admin_email"] = user["email"]
            logger.info("Admin {} logged in", user["email"])
            return redirect(url_for("admin.dashboard"))
        flash("Invalid email or password.", "error")
    return render_template("admin_login.html")


@admin_bp.route("/logout")
def admin_logout():
    session.pop("admin_id", None)
    session.pop("admin_email", None)
    flash("Logged out.", "success")
    return redirect(url_for("admin.admin_login"))


@admin_bp.route("/")
@require_admin
def dashboard():
    api = get_api_client()
    books = api.get_books()
    categories = api.get_categories()
    recent = sorted(books, key=lambda b: b["createdDate"] or "", reverse=True)[:RECENT_BOOKS]
    return render_template(
        "admin.html",
        total_books=len(books),
        total_categories=len(categories),
        recent_books=recent,
    )


# --- Books ---
@admin_bp.route("/books")
@require_admin
def admin_books():
    return render_template("admin_books.html", books=get_api_client().get_books())


@admin_bp.route("/books/new", methods=["GET", "POST"])
@require_admin
def admin_new_book():
    api = get_api_client()
    if request.method == "POST":
        data = book_from_form()
        if api.create_book(data) is not None:
            flash("Book created.", "success")
            return redirect(url_for("admin.admin_books"))
        flash("The book could not be created.", "error")
        return render_template("admin_book_edit.html", book=data, categories=api.get_categories())
    return render_template("admin_book_edit.html", book=None, categories=api.get_categories())


@admin_bp.route("/books/<int:book_id>/edit", methods=["GET", "POST"])
@require_admin
def admin_edit_book(book_id):
    api = get_api_client()
    if request.method == "POST":
        data = book_from_form(book_id)
        if api.update_book(book_id, data):
            flash("Book updated.", "success")
            return redirect(url_for("admin.admin_books"))
        flash("The book could not be updated.", "error")
        return render_template("admin_book_edit.html", book=data, categories=api.get_categories())
    book = api.get_book(book_id)
    if book is None:
        abort(404)
    return render_template("admin_book_edit.html", book=book, categories=api.get_categories())


@admin_bp.route("/books/<int:book_id>/delete", methods=["POST"])
@require_admin
def admin_delete_book(book_id):
    if get_api_client().delete_book(book_id):
        return jsonify({"success": True, "message": "Book deleted."})
    return jsonify({"success": False, "message": "The book could not be deleted."})


# --- Categories ---
@admin_bp.route("/categories")
@require_admin
def admin_categories():
    return render_template("admin_categories.html", categories=get_api_client().get_categories())


@admin_bp.route("/categories/new", methods=["GET", "POST"])
@require_admin
def admin_new_category():
    if request.method == "POST":
        data = category_from_form()
        if not data["name"]:
            flash("Category name is required.", "error")
            return render_template("admin_category_edit.html", category=data)
        if get_api_client().create_category(data) is not None:
            flash("Category created.", "success")
            return redirect(url_for("admin.admin_categories"))
        flash("The category could not be created.", "error")
        return render_template("admin_category_edit.html", category=data)
    return render_template("admin_category_edit.html", category=None)


@admin_bp.route("/categories/<int:category_id>/edit", methods=["GET", "POST"])
@require_admin
def admin_edit_category(category_id):
    api = get_api_client()
    if request.method == "POST":
        data = category_from_form(category_id)
        if api.update_category(category_id, data):
            flash("Category updated.", "success")
            return redirect(url_for("admin.admin_categories"))
        flash("The category could not be updated.", "error")
        return render_template("admin_category_edit.html", category=data)
    cat = api.get_category(category_id)
    if cat is None:
        abort(404)
    return render_template("admin_category_edit.html", category=cat)


@admin_bp.route("/categories/<int:category_id>/delete", methods=["POST"])
@require_admin
def admin_delete_category(category_id):
    if get_api_client().delete_category(category_id):
        return jsonify({"success": True, "message": "Category deleted."})
    return jsonify({"success": False, "message": "The category could not be deleted."})


# --- Orders ---
@admin_bp.route("/orders")
@require_admin
def admin_orders():
    return render_template("admin_orders.html", orders=get_api_client().get_orders(), statuses=ORDER_STATUSES)


@admin_bp.route("/orders/<int:order_id>/status", methods=["POST"])
@require_admin
def admin_order_status(order_id):
    status = request.form.get("status", "")
    if get_api_client().update_order_status(order_id, status):
        flash(f"Order #{order_id} is now {status}.", "success")
    else:
        flash("The order status could not be changed.", "error")
    return redirect(url_for("admin.admin_orders"))


@admin_bp.route("/orders/<int:order_id>/delete", methods=["POST"])
@require_admin
def admin_delete_order(order_id):
    if get_api_client().delete_order(order_id):
        return jsonify({"success": True, "message": "Order deleted."})
    return jsonify({"success": False, "message": "The order could not be deleted."})
