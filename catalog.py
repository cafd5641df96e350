# catalog.py
"""Book and category reads, writes and soft deletes."""
from loguru import logger

from core import db, Book, Category, blank, iso, to_int, to_money, unit_of_work
from errors import ConflictError, NotFoundError, ValidationError


def active_only(query, model):
    """The one soft-delete filter every list query goes through."""
    return query.filter(model.is_active.is_(True))


# --- Projections ---
def category_summary(category):
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "imageUrl": category.image_url,
        "isActive": category.is_active,
        "createdDate": iso(category.created_date),
    }


def book_projection(book, category=None):
    data = {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "description": book.description,
        "price": book.price,
        "imageUrl": book.image_url,
        "stock": book.stock,
        "isActive": book.is_active,
        "createdDate": iso(book.created_date),
        "categoryId": book.category_id,
    }
    if category is not None:
        data["category"] = category_summary(category)
    return data


def _books_with_category():
    return db.session.query(Book, Category).join(Category, Book.category_id == Category.id)


# --- Books ---
def list_books():
    rows = active_only(_books_with_category(), Book).order_by(Book.id).all()
    return [book_projection(b, c) for b, c in rows]


def get_book(book_id):
    row = _books_with_category().filter(Book.id == book_id).first()
    if row is None:
        raise NotFoundError("Book", book_id)
    book, category = row
    return book_projection(book, category)


def list_books_by_category(category_id):
    query = _books_with_category().filter(Book.category_id == category_id)
    rows = active_only(query, Book).order_by(Book.id).all()
    return [book_projection(b, c) for b, c in rows]


def _apply_book_fields(book, data):
    title = (data.get("title") or "").strip()
    author = (data.get("author") or "").strip()
    if not title:
        raise ValidationError("Title is required.")
    if not author:
        raise ValidationError("Author is required.")

    category_id = to_int(data.get("categoryId", 0), "CategoryId")
    if category_id <= 0:
        raise ValidationError("Valid CategoryId is required.")

    price = to_money(data.get("price"), "Price")
    if price <= 0:
        raise ValidationError("Price must be greater than 0.")

    stock = to_int(data.get("stock", 0), "Stock")
    if stock < 0:
        raise ValidationError("Stock cannot be negative.")

    if db.session.get(Category, category_id) is None:
        raise ValidationError("Invalid CategoryId. Category does not exist.")

    book.title = title
    book.author = author
    book.description = blank(data.get("description"))
    book.price = price
    book.image_url = blank(data.get("imageUrl"))
    book.stock = stock
    book.is_active = bool(data.get("isActive", True))
    book.category_id = category_id


def create_book(data):
    book = Book()
    with unit_of_work() as session:
        _apply_book_fields(book, data)
        session.add(book)
    logger.info("Created book {} ({})", book.id, book.title)
    return get_book(book.id)


def update_book(book_id, data):
    if "id" in data and to_int(data["id"], "Id") != book_id:
        raise ValidationError("Route id and body id do not match.")
    with unit_of_work() as session:
        book = session.get(Book, book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        _apply_book_fields(book, data)
    logger.info("Updated book {}", book_id)


def delete_book(book_id):
    with unit_of_work() as session:
        book = session.get(Book, book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        book.is_active = False  # soft delete
    logger.info("Soft-deleted book {}", book_id)


# --- Categories ---
def list_categories():
    categories = active_only(Category.query, Category).order_by(Category.id).all()
    return [category_summary(c) for c in categories]


def get_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    books = active_only(Book.query.filter_by(category_id=category.id), Book).order_by(Book.id).all()
    data = category_summary(category)
    data["books"] = [book_projection(b) for b in books]
    return data


def _name_taken(name, exclude_id=None):
    query = Category.query.filter(Category.name_key == name.casefold())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _category_name(data):
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Category name is required.")
    return name


def create_category(data):
    name = _category_name(data)
    if _name_taken(name):
        logger.warning("Rejected duplicate category name {!r}", name)
        raise ConflictError("A category with this name already exists.")
    category = Category(
        name=name,
        description=blank(data.get("description")),
        image_url=blank(data.get("imageUrl")),
        is_active=bool(data.get("isActive", True)),
    )
    with unit_of_work() as session:
        session.add(category)
    logger.info("Created category {} ({})", category.id, category.name)
    return category_summary(category)


def update_category(category_id, data):
    if "id" in data and to_int(data["id"], "Id") != category_id:
        raise ValidationError("Route id and body id do not match.")
    with unit_of_work() as session:
        category = session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        name = _category_name(data)
        if _name_taken(name, exclude_id=category_id):
            raise ConflictError("A category with this name already exists.")
        category.name = name
        category.description = blank(data.get("description"))
        category.image_url = blank(data.get("imageUrl"))
        category.is_active = bool(data.get("isActive", True))
    logger.info("Updated category {}", category_id)


def delete_category(category_id):
    with unit_of_work() as session:
        category = session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        category.is_active = False  # soft delete
    logger.info("Soft-deleted category {}", category_id)
