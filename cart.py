# cart.py
"""Session shopping cart.

The cart lives only in the Flask session; it is rebuilt from there on every
request and written back after each change.
"""
from dataclasses import dataclass, field
from decimal import Decimal

from flask import session

SESSION_KEY = "cart"


@dataclass
class CartItem:
    book_id: int
    title: str
    author: str
    price: Decimal
    image_url: str = None
    quantity: int = 1

    @property
    def total_price(self):
        return self.price * self.quantity

    def to_dict(self):
        return {
            "bookId": self.book_id,
            "title": self.title,
            "author": self.author,
            "price": str(self.price),
            "imageUrl": self.image_url,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            book_id=int(data["bookId"]),
            title=data.get("title", ""),
            author=data.get("author", ""),
            price=Decimal(str(data.get("price", "0"))),
            image_url=data.get("imageUrl"),
            quantity=int(data.get("quantity", 1)),
        )


@dataclass
class Cart:
    items: list = field(default_factory=list)

    def _find(self, book_id):
        return next((i for i in self.items if i.book_id == book_id), None)

    def add_item(self, book, quantity=1):
        """Add ``quantity`` of a book, given as an API book projection."""
        existing = self._find(book["id"])
        if existing is not None:
            existing.quantity += quantity
            return
        self.items.append(CartItem(
            book_id=book["id"],
            title=book["title"],
            author=book["author"],
            price=Decimal(str(book["price"])),
            image_url=book.get("imageUrl"),
            quantity=quantity,
        ))

    def remove_item(self, book_id):
        self.items = [i for i in self.items if i.book_id != book_id]

    def update_quantity(self, book_id, quantity):
        item = self._find(book_id)
        if item is None:
            return
        if quantity <= 0:
            self.remove_item(book_id)
        else:
            item.quantity = quantity

    def get_total_price(self):
        return sum((i.total_price for i in self.items), Decimal("0.00"))

    def get_total_quantity(self):
        return sum(i.quantity for i in self.items)

    def clear(self):
        self.items.clear()

    @property
    def is_empty(self):
        return not self.items

    def order_lines(self):
        return [{"bookId": i.book_id, "quantity": i.quantity} for i in self.items]

    def to_session(self):
        return [i.to_dict() for i in self.items]

    @classmethod
    def from_session(cls, data):
        return cls(items=[CartItem.from_dict(d) for d in data or []])


def load_cart():
    return Cart.from_session(session.get(SESSION_KEY))


def save_cart(cart):
    session[SESSION_KEY] = cart.to_session()
