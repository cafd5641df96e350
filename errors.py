# errors.py
from flask import jsonify
from loguru import logger


class BookstoreError(Exception):
    """Base class for failures that map onto an HTTP response."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def public_message(self):
        return self.message


class ValidationError(BookstoreError):
    status_code = 400


class NotFoundError(BookstoreError):
    status_code = 404

    def __init__(self, entity, entity_id):
        super().__init__(f"{entity} with ID {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(BookstoreError):
    status_code = 400


class InsufficientStockError(BookstoreError):
    status_code = 400

    def __init__(self, book_id, title, requested, available):
        super().__init__(
            f"Insufficient stock for book: {title}. "
            f"Available: {available}, Requested: {requested}"
        )
        self.book_id = book_id
        self.requested = requested
        self.available = available


class PersistenceError(BookstoreError):
    status_code = 500

    # Storage detail stays in the logs.
    def public_message(self):
        return "A storage error occurred."


class AuthenticationError(BookstoreError):
    status_code = 401


def register_error_handlers(app):
    @app.errorhandler(BookstoreError)
    def handle_bookstore_error(exc):
        if exc.status_code >= 500:
            logger.error("{}: {}", type(exc).__name__, exc.message)
        return jsonify({"message": exc.public_message()}), exc.status_code
