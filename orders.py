# orders.py
"""Order placement, status changes, deletion and order read projections.

Placement and deletion each run as one unit of work: the stock changes and
the order rows commit together or not at all.
"""
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy import select, update

from core import db, Book, Order, OrderItem, User, ORDER_STATUSES, MONEY, blank, iso, unit_of_work
from errors import InsufficientStockError, NotFoundError, ValidationError


def _find_book(session, book_id):
    return session.get(Book, book_id)


def _take_stock(session, book_id, quantity):
    """Decrement stock in SQL only if enough is left; False when it is not.

    The guard runs against the committed row, so two checkouts racing for
    the last copies cannot both succeed.
    """
    stmt = (
        update(Book)
        .where(Book.id == book_id, Book.stock >= quantity)
        .values(stock=Book.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def _return_stock(session, book_id, quantity):
    stmt = (
        update(Book)
        .where(Book.id == book_id)
        .values(stock=Book.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def place_order(user_id, items, shipping_address=None):
    """Validate ``items`` against stock and persist the order.

    ``items`` is a sequence of ``(book_id, quantity)`` pairs, processed in
    order; the first failing line aborts the whole order.
    """
    if user_id <= 0:
        raise ValidationError("Valid UserId is required.")
    if not items:
        raise ValidationError("At least one order item is required.")

    with unit_of_work() as session:
        if session.get(User, user_id) is None:
            raise ValidationError("Invalid UserId. User does not exist.")

        order = Order(
            user_id=user_id,
            shipping_address=blank(shipping_address),
            status="Pending",
            order_date=datetime.now(),
        )
        total_amount = Decimal("0.00")

        # The order rows are only flushed at commit, after every line passed.
        with session.no_autoflush:
            for book_id, quantity in items:
                if quantity <= 0:
                    raise ValidationError(f"Quantity for book {book_id} must be greater than 0.")
                book = _find_book(session, book_id)
                if book is None:
                    logger.warning("Order rejected: book {} not found", book_id)
                    raise NotFoundError("Book", book_id)
                if not _take_stock(session, book_id, quantity):
                    available = session.execute(
                        select(Book.stock).where(Book.id == book_id)
                    ).scalar_one()
                    logger.warning(
                        "Order rejected: book {} has {} in stock, {} requested",
                        book_id, available, quantity,
                    )
                    raise InsufficientStockError(book.id, book.title, quantity, available)

                unit_price = Decimal(book.price).quantize(MONEY)
                line_total = (unit_price * quantity).quantize(MONEY)
                order.items.append(
                    OrderItem(book_id=book.id, quantity=quantity, unit_price=unit_price, total_price=line_total)
                )
                total_amount += line_total

        order.total_amount = total_amount
        session.add(order)

    logger.info("Placed order {} for user {}: {} line(s), total {}",
                order.id, user_id, len(items), total_amount)
    return {
        "id": order.id,
        "totalAmount": order.total_amount,
        "status": order.status,
        "orderDate": iso(order.order_date),
    }

def update_order_status(order_id, status):
    with unit_of_work() as session:
        order = session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        if status not in ORDER_STATUSES:
            raise ValidationError("Invalid status. Valid statuses: " + ", ".join(ORDER_STATUSES))
        previous = order.status
        order.status = status
    logger.info("Order {} status {} -> {}", order_id, previous, status)
    return status


def delete_order(order_id):
    """Remove an order and put its quantities back on the shelf."""
    with unit_of_work() as session:
        order = session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        for item in order.items:
            # Books removed outright since the order was placed are skipped.
            if not _return_stock(session, item.book_id, item.quantity):
                logger.warning("Order {}: book {} no longer exists, stock not restored",
                               order_id, item.book_id)
        session.delete(order)
    logger.info("Deleted order {} and restored its stock", order_id)


# --- Projections ---
def _lookup(model, ids):
    ids = set(ids)
    if not ids:
        return {}
    return {row.id: row for row in model.query.filter(model.id.in_(ids)).all()}


def _book_summary(book, detailed=False):
    if book is None:
        return None
    data = {"id": book.id, "title": book.title, "author": book.author, "imageUrl": book.image_url}
    if detailed:
        data["categoryId"] = book.category_id
    return data


def _user_summary(user, detailed=False):
    if user is None:
        return None
    data = {"id": user.id, "firstName": user.first_name, "lastName": user.last_name, "email": user.email}
    if detailed:
        data["phone"] = user.phone
        data["address"] = user.address
    return data


def _project(orders, include_user=True, detailed=False):
    books = _lookup(Book, (i.book_id for o in orders for i in o.items))
    users = _lookup(User, (o.user_id for o in orders)) if include_user else {}
    result = []
    for o in orders:
        data = {
            "id": o.id,
            "userId": o.user_id,
            "totalAmount": o.total_amount,
            "status": o.status,
            "orderDate": iso(o.order_date),
            "shippingAddress": o.shipping_address,
        }
        if include_user:
            data["user"] = _user_summary(users.get(o.user_id), detailed)
        data["orderItems"] = [
            {
                "id": i.id,
                "orderId": i.order_id,
                "bookId": i.book_id,
                "quantity": i.quantity,
                "unitPrice": i.unit_price,
                "totalPrice": i.total_price,
                "book": _book_summary(books.get(i.book_id), detailed),
            }
            for i in o.items
        ]
        result.append(data)
    return result


def list_orders():
    orders = Order.query.order_by(Order.order_date.desc(), Order.id.desc()).all()
    return _project(orders)


def get_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return _project([order], detailed=True)[0]


def list_orders_by_user(user_id):
    orders = (
        Order.query.filter_by(user_id=user_id)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )
    return _project(orders, include_user=False)
