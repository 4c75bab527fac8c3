from conftest import bearer
from shopeasy.products.service import ProductFilters, ProductService


def _listing(**overrides):
    return {"title": "Desk Lamp", "price": 25.0, "category": "home", "stock": 3, **overrides}


def test_create_listing(client, auth_headers, test_user):
    response = client.post("/api/products/listings/", headers=auth_headers, json=_listing(features=["LED"]))

    assert response.status_code == 201
    product = response.json()["product"]
    assert product["rating"] == {"rate": 0.0, "count": 0}
    assert product["features"] == ["LED"]
    assert "owner_id" not in product

    mine = client.get("/api/products/listings/mine", headers=auth_headers).json()
    assert mine["total"] == 1
    assert mine["listings"][0]["status"] == "active"
    assert mine["listings"][0]["product"]["title"] == "Desk Lamp"


def test_create_listing_validation(client, auth_headers):
    missing = client.post("/api/products/listings/", headers=auth_headers, json={"title": "No price"})
    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "MISSING_REQUIRED_FIELD"

    negative = client.post("/api/products/listings/", headers=auth_headers, json=_listing(price=-1))
    assert negative.status_code == 400
    negative_stock = client.post("/api/products/listings/", headers=auth_headers, json=_listing(stock=-1))
    assert negative_stock.status_code == 400


def test_owner_updates_listing_but_not_ownership(client, make_user, make_product, auth_headers, test_user):
    product = make_product()

    response = client.put(
        f"/api/products/listings/{product.id}",
        headers=auth_headers,
        json={"price": 15.0, "stock": 9},
    )
    assert response.status_code == 200
    assert response.json()["product"]["price"] == 15.0
    assert product.owner_id == test_user.id

    stranger = client.put(f"/api/products/listings/{product.id}", headers=bearer(make_user()), json={"price": 1.0})
    assert stranger.status_code == 403

    negative = client.put(f"/api/products/listings/{product.id}", headers=auth_headers, json={"stock": -3})
    assert negative.status_code == 400


def test_public_listing_filters(client, db_session, make_product):
    make_product(title="Red Phone", category="electronics", price=100.0)
    make_product(title="Blue Phone", category="electronics", price=300.0)
    make_product(title="Chair", category="furniture", price=50.0)
    hidden = make_product(title="Hidden Phone", category="electronics", price=120.0)
    hidden.is_active = False
    db_session.commit()

    everything = client.get("/api/products/").json()
    assert everything["total"] == 3

    phones = client.get("/api/products/", params={"search": "phone"}).json()
    assert {p["title"] for p in phones["data"]} == {"Red Phone", "Blue Phone"}

    priced = client.get("/api/products/", params={"minPrice": 60, "maxPrice": 200}).json()
    assert [p["title"] for p in priced["data"]] == ["Red Phone"]

    furniture = client.get("/api/products/category/furniture").json()
    assert [p["title"] for p in furniture["data"]] == ["Chair"]

    paged = client.get("/api/products/", params={"limit": 2, "page": 2}).json()
    assert len(paged["data"]) == 1
    assert paged["total_pages"] == 2


def test_get_product(client, make_product):
    product = make_product()
    response = client.get(f"/api/products/{product.id}")
    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Widget"
    assert client.get("/api/products/00000000-0000-0000-0000-000000000000").status_code == 404


def test_increment_stock_is_conditional(db_session, make_product):
    product = make_product(stock=2)

    assert ProductService.increment_stock(db_session, product.id, -3) is False
    assert ProductService.increment_stock(db_session, product.id, -2) is True
    assert ProductService.increment_stock(db_session, product.id, 4) is True
    db_session.commit()

    assert product.stock == 4


def test_sorting_and_count(db_session, make_product):
    make_product(title="B", price=2.0)
    make_product(title="A", price=3.0)
    make_product(title="C", price=1.0)
    filters = ProductFilters()

    assert [p.title for p in ProductService.find(db_session, filters, sort="price")] == ["C", "B", "A"]
    assert [p.title for p in ProductService.find(db_session, filters, sort="-title")] == ["C", "B", "A"]
    assert ProductService.count(db_session, ProductFilters(max_price=2.0)) == 2
