"""REST endpoints under /api."""
import pytest
from sqlalchemy.exc import OperationalError

from core import db


def test_list_books(client):
    response = client.get("/api/books")
    assert response.status_code == 200
    books = response.get_json()
    assert [b["title"] for b in books] == ["Suç ve Ceza", "Dune"]
    assert books[0]["price"] == "45.50"
    assert books[0]["category"]["name"] == "Roman"


def test_get_missing_book_is_404(client):
    response = client.get("/api/books/999")
    assert response.status_code == 404
    assert "not found" in response.get_json()["message"]


def test_create_book(client, seeded):
    response = client.post("/api/books", json={
        "title": "Sapiens", "author": "Yuval Noah Harari", "price": 55.75,
        "stock": 8, "categoryId": seeded.roman,
    })
    assert response.status_code == 201
    body = response.get_json()
    assert body["price"] == "55.75"
    assert response.headers["Location"].endswith(f"/api/books/{body['id']}")


def test_create_book_validation_message(client, seeded):
    response = client.post("/api/books", json={
        "title": "Sapiens", "author": "Harari", "price": 0, "categoryId": seeded.roman,
    })
    assert response.status_code == 400
    assert response.get_json() == {"message": "Price must be greater than 0."}


def test_non_json_body_is_rejected(client):
    response = client.post("/api/categories", data="name=x")
    assert response.status_code == 400


def test_update_and_soft_delete_book(client, seeded):
    payload = {
        "id": seeded.dune, "title": "Dune", "author": "Frank Herbert",
        "price": "70.00", "stock": 15, "categoryId": seeded.scifi,
    }
    assert client.put(f"/api/books/{seeded.dune}", json=payload).status_code == 204
    assert client.get(f"/api/books/{seeded.dune}").get_json()["price"] == "70.00"

    assert client.delete(f"/api/books/{seeded.dune}").status_code == 204
    assert seeded.dune not in [b["id"] for b in client.get("/api/books").get_json()]
    assert client.get(f"/api/books/category/{seeded.scifi}").get_json() == []
    assert client.get(f"/api/books/{seeded.dune}").get_json()["isActive"] is False


def test_put_book_id_mismatch(client, seeded):
    response = client.put(f"/api/books/{seeded.dune}", json={"id": seeded.crime, "title": "x"})
    assert response.status_code == 400


def test_categories(client, seeded):
    response = client.post("/api/categories", json={"name": "Felsefe"})
    assert response.status_code == 201
    assert response.get_json()["isActive"] is True

    duplicate = client.post("/api/categories", json={"name": "felsefe"})
    assert duplicate.status_code == 400
    assert duplicate.get_json()["message"] == "A category with this name already exists."

    names = [c["name"] for c in client.get("/api/categories").get_json()]
    assert names == ["Roman", "Bilim Kurgu", "Felsefe"]

    detail = client.get(f"/api/categories/{seeded.roman}").get_json()
    assert [b["title"] for b in detail["books"]] == ["Suç ve Ceza"]

    assert client.delete(f"/api/categories/{seeded.scifi}").status_code == 204
    assert client.delete("/api/categories/999").status_code == 404


def test_order_lifecycle(client, seeded):
    response = client.post("/api/orders", json={
        "userId": seeded.customer,
        "shippingAddress": "Kadıköy, Istanbul",
        "orderItems": [{"bookId": seeded.crime, "quantity": 2}],
    })
    assert response.status_code == 201
    created = response.get_json()
    assert created["totalAmount"] == "91.00"
    assert created["status"] == "Pending"
    assert created["message"] == "Order created successfully"
    assert client.get(f"/api/books/{seeded.crime}").get_json()["stock"] == 8

    order_id = created["id"]
    detail = client.get(f"/api/orders/{order_id}").get_json()
    assert detail["shippingAddress"] == "Kadıköy, Istanbul"
    assert detail["orderItems"][0]["unitPrice"] == "45.50"

    status = client.put(f"/api/orders/{order_id}/status", json="Shipped")
    assert status.status_code == 200
    assert status.get_json() == {"message": "Order status updated successfully", "status": "Shipped"}

    bad = client.put(f"/api/orders/{order_id}/status", json="Teleported")
    assert bad.status_code == 400
    assert bad.get_json()["message"].startswith("Invalid status.")
    assert client.get(f"/api/orders/{order_id}").get_json()["status"] == "Shipped"

    assert [o["id"] for o in client.get(f"/api/orders/user/{seeded.customer}").get_json()] == [order_id]
    assert len(client.get("/api/orders").get_json()) == 1

    deleted = client.delete(f"/api/orders/{order_id}")
    assert deleted.get_json() == {"message": "Order deleted successfully"}
    assert client.get(f"/api/books/{seeded.crime}").get_json()["stock"] == 10
    assert client.get(f"/api/orders/{order_id}").status_code == 404


def test_order_insufficient_stock(client, seeded):
    response = client.post("/api/orders", json={
        "userId": seeded.customer,
        "orderItems": [{"bookId": seeded.dune, "quantity": 16}],
    })
    assert response.status_code == 400
    assert "Available: 15, Requested: 16" in response.get_json()["message"]
    assert client.get("/api/orders").get_json() == []


@pytest.mark.parametrize("line", [
    {"bookId": 1, "quantity": 1.5},
    {"bookId": 1.5, "quantity": 1},
])
def test_order_rejects_fractional_numbers(client, seeded, line):
    response = client.post("/api/orders", json={"userId": seeded.customer, "orderItems": [line]})
    assert response.status_code == 400
    assert "must be an integer" in response.get_json()["message"]
    assert client.get("/api/orders").get_json() == []


def test_storage_failure_is_500_with_generic_message(client, seeded, monkeypatch):
    def failing_commit():
        db.session.flush()
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db.session, "commit", failing_commit)
    response = client.post("/api/orders", json={
        "userId": seeded.customer,
        "orderItems": [{"bookId": seeded.crime, "quantity": 2}],
    })
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.get_json() == {"message": "A storage error occurred."}
    assert client.get(f"/api/books/{seeded.crime}").get_json()["stock"] == 10
    assert client.get("/api/orders").get_json() == []


def test_order_unknown_book_is_404(client, seeded):
    response = client.post("/api/orders", json={
        "userId": seeded.customer,
        "orderItems": [{"bookId": seeded.crime, "quantity": 1}, {"bookId": 4040, "quantity": 1}],
    })
    assert response.status_code == 404
    assert client.get(f"/api/books/{seeded.crime}").get_json()["stock"] == 10


def test_order_requires_items(client, seeded):
    response = client.post("/api/orders", json={"userId": seeded.customer, "orderItems": []})
    assert response.status_code == 400
    assert response.get_json()["message"] == "At least one order item is required."


def test_status_of_unknown_order(client):
    assert client.put("/api/orders/5/status", json="Shipped").status_code == 404


def test_users_and_login(client):
    response = client.post("/api/users", json={
        "firstName": "Ali", "lastName": "Veli", "email": "ali@example.com", "password": "pw",
    })
    assert response.status_code == 201
    user_id = response.get_json()["id"]
    assert client.get(f"/api/users/{user_id}").get_json()["email"] == "ali@example.com"

    ok = client.post("/api/users/login", json={"email": "ali@example.com", "password": "pw"})
    assert ok.status_code == 200
    denied = client.post("/api/users/login", json={"email": "ali@example.com", "password": "nope"})
    assert denied.status_code == 401


def test_favorites_endpoints(client, seeded):
    created = client.post("/api/favorites", json={"userId": seeded.customer, "bookId": seeded.dune})
    assert created.status_code == 201
    again = client.post("/api/favorites", json={"userId": seeded.customer, "bookId": seeded.dune})
    assert again.status_code == 400

    listed = client.get(f"/api/favorites/user/{seeded.customer}").get_json()
    assert [f["title"] for f in listed] == ["Dune"]

    url = f"/api/favorites/user/{seeded.customer}/book/{seeded.dune}"
    assert client.delete(url).status_code == 204
    assert client.delete(url).status_code == 404
