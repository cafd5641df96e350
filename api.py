# api.py
from flask import Blueprint, jsonify, request, url_for

import accounts
import catalog
import orders
from core import to_int
from errors import ValidationError

api_bp = Blueprint("api", __name__)


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def created(payload, endpoint, **values):
    response = jsonify(payload)
    response.status_code = 201
    response.headers["Location"] = url_for(endpoint, **values)
    return response


def no_content():
    return "", 204


# --- Books ---
@api_bp.route("/books", methods=["GET"])
def get_books():
    return jsonify(catalog.list_books())


@api_bp.route("/books/<int:book_id>", methods=["GET"])
def get_book(book_id):
    return jsonify(catalog.get_book(book_id))


@api_bp.route("/books/category/<int:category_id>", methods=["GET"])
def get_books_by_category(category_id):
    return jsonify(catalog.list_books_by_category(category_id))


@api_bp.route("/books", methods=["POST"])
def post_book():
    book = catalog.create_book(json_body())
    return created(book, "api.get_book", book_id=book["id"])


@api_bp.route("/books/<int:book_id>", methods=["PUT"])
def put_book(book_id):
    catalog.update_book(book_id, json_body())
    return no_content()


@api_bp.route("/books/<int:book_id>", methods=["DELETE"])
def delete_book(book_id):
    catalog.delete_book(book_id)
    return no_content()


# --- Categories ---
@api_bp.route("/categories", methods=["GET"])
def get_categories():
    return jsonify(catalog.list_categories())


@api_bp.route("/categories/<int:category_id>", methods=["GET"])
def get_category(category_id):
    return jsonify(catalog.get_category(category_id))


@api_bp.route("/categories", methods=["POST"])
def post_category():
    category = catalog.create_category(json_body())
    return created(category, "api.get_category", category_id=category["id"])


@api_bp.route("/categories/<int:category_id>", methods=["PUT"])
def put_category(category_id):
    catalog.update_category(category_id, json_body())
    return no_content()


@api_bp.route("/categories/<int:category_id>", methods=["DELETE"])
def delete_category(category_id):
    catalog.delete_category(category_id)
    return no_content()


# --- Orders ---
@api_bp.route("/orders", methods=["GET"])
def get_orders():
    return jsonify(orders.list_orders())


@api_bp.route("/orders/<int:order_id>", methods=["GET"])
def get_order(order_id):
    return jsonify(orders.get_order(order_id))


@api_bp.route("/orders/user/<int:user_id>", methods=["GET"])
def get_orders_by_user(user_id):
    return jsonify(orders.list_orders_by_user(user_id))


@api_bp.route("/orders/<int:order_id>/status", methods=["PUT"])
def put_order_status(order_id):
    status = request.get_json(silent=True)
    status = orders.update_order_status(order_id, status if isinstance(status, str) else None)
    return jsonify({"message": "Order status updated successfully", "status": status})


@api_bp.route("/orders", methods=["POST"])
def post_order():
    data = json_body()
    raw_items = data.get("orderItems") or []
    if not isinstance(raw_items, list):
        raise ValidationError("orderItems must be a list.")
    items = []
    for entry in raw_items:
        if not isinstance(entry, dict):
            raise ValidationError("Each order item must be an object.")
        items.append((to_int(entry.get("bookId"), "BookId"), to_int(entry.get("quantity"), "Quantity")))

    result = orders.place_order(
        to_int(data.get("userId", 0), "UserId"),
        items,
        shipping_address=data.get("shippingAddress"),
    )
    result["message"] = "Order created successfully"
    return created(result, "api.get_order", order_id=result["id"])


@api_bp.route("/orders/<int:order_id>", methods=["DELETE"])
def delete_order(order_id):
    orders.delete_order(order_id)
    return jsonify({"message": "Order deleted successfully"})


# --- Users ---
@api_bp.route("/users", methods=["POST"])
def post_user():
    user = accounts.register_user(json_body())
    return created(user, "api.get_user", user_id=user["id"])


@api_bp.route("/users/<int:user_id>", methods=["GET"])
def get_user(user_id):
    return jsonify(accounts.get_user(user_id))


@api_bp.route("/users/login", methods=["POST"])
def login():
    data = json_body()
    return jsonify(accounts.authenticate(data.get("email"), data.get("password")))


# --- Favorites ---
@api_bp.route("/favorites/user/<int:user_id>", methods=["GET"])
def get_favorites(user_id):
    return jsonify(accounts.list_favorites(user_id))


@api_bp.route("/favorites", methods=["POST"])
def post_favorite():
    data = json_body()
    favorite = accounts.add_favorite(
        to_int(data.get("userId"), "UserId"), to_int(data.get("bookId"), "BookId")
    )
    response = jsonify(favorite)
    response.status_code = 201
    return response


@api_bp.route("/favorites/user/<int:user_id>/book/<int:book_id>", methods=["DELETE"])
def delete_favorite(user_id, book_id):
    accounts.remove_favorite(user_id, book_id)
    return no_content()
