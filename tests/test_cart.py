from shopeasy.cart.service import MAX_QUANTITY_PER_ITEM


def _add(client, headers, product, quantity=1):
    return client.post("/api/cart/", headers=headers, json={"product_id": str(product.id), "quantity": quantity})


def test_add_merges_quantities(client, make_product, auth_headers):
    product = make_product(price=2.5)
    _add(client, auth_headers, product, 2)

    response = _add(client, auth_headers, product, 3)

    body = response.json()
    assert response.status_code == 200
    assert body["message"] == "Product added to cart"
    assert len(body["cart"]) == 1
    assert body["cart"][0]["quantity"] == 5
    assert body["total_items"] == 5
    assert body["total_price"] == 12.5


def test_quantity_cap(client, make_product, auth_headers):
    product = make_product()
    _add(client, auth_headers, product, MAX_QUANTITY_PER_ITEM)
    assert _add(client, auth_headers, product, 1).status_code == 400


def test_cannot_add_inactive_product(client, db_session, make_product, auth_headers):
    product = make_product()
    product.is_active = False
    db_session.commit()
    assert _add(client, auth_headers, product).status_code == 404


def test_update_and_remove(client, make_product, auth_headers):
    product = make_product()
    _add(client, auth_headers, product)

    assert client.put(f"/api/cart/{product.id}", headers=auth_headers, json={"quantity": 0}).status_code == 400
    updated = client.put(f"/api/cart/{product.id}", headers=auth_headers, json={"quantity": 4})
    assert updated.json()["cart"][0]["quantity"] == 4

    removed = client.delete(f"/api/cart/{product.id}", headers=auth_headers)
    assert removed.json()["cart"] == []
    assert client.put(f"/api/cart/{product.id}", headers=auth_headers, json={"quantity": 1}).status_code == 404


def test_clear_cart(client, make_product, auth_headers):
    _add(client, auth_headers, make_product(title="One"))
    _add(client, auth_headers, make_product(title="Two"))

    response = client.delete("/api/cart/", headers=auth_headers)

    assert response.json()["cart"] == []
    assert client.get("/api/cart/", headers=auth_headers).json()["total_items"] == 0


def test_dangling_reference_reads_as_unavailable(client, db_session, make_product, auth_headers):
    kept = make_product(title="Kept", price=3.0)
    gone = make_product(title="Gone", price=7.0)
    _add(client, auth_headers, kept)
    _add(client, auth_headers, gone)
    db_session.delete(gone)
    db_session.commit()

    body = client.get("/api/cart/", headers=auth_headers).json()

    by_availability = {entry["available"]: entry for entry in body["cart"]}
    assert by_availability[True]["product"]["title"] == "Kept"
    assert by_availability[False]["product"] is None
    assert body["total_items"] == 1
    assert body["total_price"] == 3.0


def test_wishlist_add_is_idempotent(client, make_product, auth_headers):
    product = make_product()
    client.post("/api/wishlist/", headers=auth_headers, json={"product_id": str(product.id)})

    again = client.post("/api/wishlist/", headers=auth_headers, json={"product_id": str(product.id)})

    assert again.json()["message"] == "Product already in wishlist"
    assert len(again.json()["wishlist"]) == 1

    removed = client.delete(f"/api/wishlist/{product.id}", headers=auth_headers)
    assert removed.json()["wishlist"] == []


def test_cart_requires_login(client):
    assert client.get("/api/cart/").status_code == 401
