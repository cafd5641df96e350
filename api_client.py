# api_client.py
"""HTTP client the storefront and admin panel use to reach the REST API."""
import httpx
from flask import current_app, g
from loguru import logger


class ApiClient:
    """Thin wrapper over httpx.Client.

    Read helpers return empty results when the API is unreachable or
    answers with an error, so pages still render.
    """

    def __init__(self, base_url, timeout=30.0, transport=None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self):
        self._client.close()

    def _request(self, method, path, **kwargs):
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("API {} {} failed: {}", method, path, exc)
            return None
        if response.is_error:
            logger.error("API {} {} returned {}: {}", method, path, response.status_code, response.text)
        return response

    def _get_json(self, path, default=None):
        response = self._request("GET", path)
        if response is None or response.is_error:
            return default
        return response.json()

    def _ok(self, response):
        return response is not None and response.is_success

    @staticmethod
    def error_message(response, fallback="The API could not be reached."):
        if response is None:
            return fallback
        try:
            return response.json().get("message", response.text)
        except ValueError:
            return response.text or fallback

    # Books
    def get_books(self):
        return self._get_json("/books", default=[])

    def get_book(self, book_id):
        return self._get_json(f"/books/{book_id}")

    def get_books_by_category(self, category_id):
        return self._get_json(f"/books/category/{category_id}", default=[])

    def create_book(self, book):
        response = self._request("POST", "/books", json=book)
        return response.json() if self._ok(response) else None

    def update_book(self, book_id, book):
        return self._ok(self._request("PUT", f"/books/{book_id}", json=book))

    def delete_book(self, book_id):
        return self._ok(self._request("DELETE", f"/books/{book_id}"))

    # Categories
    def get_categories(self):
        return self._get_json("/categories", default=[])

    def get_category(self, category_id):
        return self._get_json(f"/categories/{category_id}")

    def create_category(self, category):
        response = self._request("POST", "/categories", json=category)
        return response.json() if self._ok(response) else None

    def update_category(self, category_id, category):
        return self._ok(self._request("PUT", f"/categories/{category_id}", json=category))

    def delete_category(self, category_id):
        return self._ok(self._request("DELETE", f"/categories/{category_id}"))

    # Orders
    def get_orders(self):
        return self._get_json("/orders", default=[])

    def get_order(self, order_id):
        return self._get_json(f"/orders/{order_id}")

    def get_orders_by_user(self, user_id):
        return self._get_json(f"/orders/user/{user_id}", default=[])

    def create_order(self, user_id, order_lines, shipping_address=None):
        """Returns ``(True, created_order)`` or ``(False, error_message)``."""
        payload = {"userId": user_id, "shippingAddress": shipping_address, "orderItems": order_lines}
        response = self._request("POST", "/orders", json=payload)
        if self._ok(response):
            return True, response.json()
        return False, self.error_message(response)

    def update_order_status(self, order_id, status):
        return self._ok(self._request("PUT", f"/orders/{order_id}/status", json=status))

    def delete_order(self, order_id):
        return self._ok(self._request("DELETE", f"/orders/{order_id}"))

    # Accounts
    def authenticate(self, email, password):
        response = self._request("POST", "/users/login", json={"email": email, "password": password})
        return response.json() if self._ok(response) else None

    def add_favorite(self, user_id, book_id):
        response = self._request("POST", "/favorites", json={"userId": user_id, "bookId": book_id})
        if self._ok(response):
            return True, response.json()
        return False, self.error_message(response)


def get_api_client():
    """Per-request client built from app config."""
    if "api_client" not in g:
        g.api_client = ApiClient(
            current_app.config["API_BASE_URL"],
            timeout=current_app.config["API_TIMEOUT"],
            transport=current_app.config.get("API_CLIENT_TRANSPORT"),
        )
    return g.api_client


def close_api_client(exc=None):
    client = g.pop("api_client", None)
    if client is not None:
        client.close()
