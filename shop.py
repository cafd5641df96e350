# shop.py
from decimal import Decimal, InvalidOperation

from flask import (
    Blueprint, abort, current_app, flash, jsonify, redirect, render_template, request, url_for,
)
from loguru import logger

from api_client import get_api_client
from cart import load_cart, save_cart

shop_bp = Blueprint("shop", __name__)

FEATURED_COUNT = 6
HOME_CATEGORY_COUNT = 4
RELATED_COUNT = 4


# --- Helpers (storefront-specific) ---
def decimal_arg(name):
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        return Decimal(raw)
    except InvalidOperation:
        return None


def customer_id():
    return current_app.config["STORE_CUSTOMER_ID"]


def cart_summary(cart):
    return {"cartTotal": str(cart.get_total_price()), "cartCount": cart.get_total_quantity()}


def filter_books(books, category_id=None, search=None, min_price=None, max_price=None):
    if category_id is not None:
        books = [b for b in books if b["categoryId"] == category_id]
    if search:
        needle = search.lower()
        books = [b for b in books if needle in b["title"].lower() or needle in b["author"].lower()]
    if min_price is not None:
        books = [b for b in books if Decimal(str(b["price"])) >= min_price]
    if max_price is not None:
        books = [b for b in books if Decimal(str(b["price"])) <= max_price]
    return books


@shop_bp.app_context_processor
def inject_cart_count():
    return {"cart_count": load_cart().get_total_quantity()}


# --- Routes: Storefront ---
@shop_bp.route("/")
def index():
    api = get_api_client()
    books = api.get_books()
    categories = api.get_categories()
    return render_template(
        "index.html",
        featured=books[:FEATURED_COUNT],
        categories=categories[:HOME_CATEGORY_COUNT],
    )


@shop_bp.route("/books")
def books():
    api = get_api_client()
    category_id = request.args.get("categoryId", type=int)
    search = request.args.get("search", "").strip()
    min_price = decimal_arg("minPrice")
    max_price = decimal_arg("maxPrice")
    results = filter_books(api.get_books(), category_id, search, min_price, max_price)
    return render_template(
        "books.html",
        books=results,
        categories=api.get_categories(),
        selected_category_id=category_id,
        search=search,
        min_price=min_price,
        max_price=max_price,
    )


@shop_bp.route("/books/<int:book_id>")
def book_detail(book_id):
    api = get_api_client()
    book = api.get_book(book_id)
    if book is None:
        abort(404)
    related = [b for b in api.get_books_by_category(book["categoryId"]) if b["id"] != book_id]
    return render_template("book_detail.html", book=book, related=related[:RELATED_COUNT])


@shop_bp.route("/categories")
def categories():
    return render_template("categories.html", categories=get_api_client().get_categories())


@shop_bp.route("/categories/<int:category_id>")
def category(category_id):
    api = get_api_client()
    cat = api.get_category(category_id)
    if cat is None:
        abort(404)
    books = api.get_books_by_category(category_id)
    return render_template("category.html", category=cat, books=books)


@shop_bp.route("/cart/add", methods=["POST"])
def add_to_cart():
    book_id = request.form.get("bookId", type=int)
    quantity = request.form.get("quantity", 1, type=int)
    book = get_api_client().get_book(book_id) if book_id is not None else None
    if book is None:
        return jsonify({"success": False, "message": "Book not found."}), 404
    if quantity <= 0:
        return jsonify({"success": False, "message": "Quantity must be at least 1."}), 400
    cart = load_cart()
    cart.add_item(book, quantity)
    save_cart(cart)
    return jsonify({"success": True, "message": f"Added '{book['title']}' to cart.", **cart_summary(cart)})


@shop_bp.route("/cart")
def cart_view():
    cart = load_cart()
    return render_template("cart.html", cart=cart, total=cart.get_total_price())


@shop_bp.route("/cart/update", methods=["POST"])
def update_cart():
    book_id = request.form.get("bookId", type=int)
    quantity = request.form.get("quantity", 0, type=int)
    cart = load_cart()
    if book_id is not None:
        cart.update_quantity(book_id, quantity)
        save_cart(cart)
    return jsonify({"success": True, **cart_summary(cart)})


@shop_bp.route("/cart/remove", methods=["POST"])
def remove_from_cart():
    book_id = request.form.get("bookId", type=int)
    cart = load_cart()
    if book_id is not None:
        cart.remove_item(book_id)
        save_cart(cart)
    return jsonify({"success": True, **cart_summary(cart)})


@shop_bp.route("/favorites/add", methods=["POST"])
def add_to_favorites():
    book_id = request.form.get("bookId", type=int)
    if book_id is None:
        return jsonify({"success": False, "message": "Book not found."}), 400
    ok, result = get_api_client().add_favorite(customer_id(), book_id)
    if ok:
        return jsonify({"success": True, "message": "Book added to favorites."})
    return jsonify({"success": False, "message": result})


@shop_bp.route("/checkout", methods=["GET"])
def checkout():
    cart = load_cart()
    if cart.is_empty:
        flash("Your cart is empty.", "error")
        return redirect(url_for("shop.cart_view"))
    return render_template("checkout.html", cart=cart, total=cart.get_total_price())


@shop_bp.route("/checkout", methods=["POST"])
def complete_order():
    cart = load_cart()
    if cart.is_empty:
        return jsonify({"success": False, "message": "Your cart is empty."})

    name = request.form.get("customerName", "").strip()
    email = request.form.get("customerEmail", "").strip()
    address = request.form.get("shippingAddress", "").strip()
    if not name or not email:
        return jsonify({"success": False, "message": "Please provide name and email."})

    ok, result = get_api_client().create_order(customer_id(), cart.order_lines(), address or None)
    if not ok:
        logger.warning("Checkout failed: {}", result)
        return jsonify({"success": False, "message": f"Order could not be created: {result}"})

    cart.clear()
    save_cart(cart)
    flash(f"Thank you {name}, your order #{result['id']} has been placed!", "success")
    return jsonify({"success": True, "message": "Order completed.", "orderId": result["id"]})


@shop_bp.route("/orders")
def my_orders():
    return render_template("orders.html", orders=get_api_client().get_orders_by_user(customer_id()))


# --- Routes: Info pages ---
@shop_bp.route("/about")
def about():
    return render_template("about.html")


@shop_bp.route("/contact", methods=["GET", "POST"])
def contact():
    if request.method == "POST":
        name = request.form.get("name", "").strip()
        email = request.form.get("email", "").strip()
        message = request.form.get("message", "").strip()
        if name and email and message:
            # Nothing is sent anywhere yet; the message is only logged.
            logger.info("Contact message from {} <{}>", name, email)
            flash("Your message has been sent. We will get back to you soon.", "success")
            return redirect(url_for("shop.contact"))
        flash("Please fill in all fields.", "error")
        return render_template("contact.html", name=name, email=email, message=message)
    return render_template("contact.html")
