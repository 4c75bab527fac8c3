from conftest import SHIPPING, bearer
from shopeasy.cart.models import CartItem, WishlistItem
from shopeasy.products.cascade import DELETE_PRODUCT_SAGA, build_delete_product_steps
from shopeasy.products.models import Listing, Product
from shopeasy.sagas.models import SagaLog, SAGA_COMPLETED, SAGA_FAILED
from shopeasy.sagas.runner import SAGA_REGISTRY, SagaStep


def _fill_cart_and_wishlist(client, headers, product):
    client.post("/api/cart/", headers=headers, json={"product_id": str(product.id), "quantity": 1})
    client.post("/api/wishlist/", headers=headers, json={"product_id": str(product.id)})


def _carts_unreachable(payload):
    def fail(db, payload):
        raise RuntimeError("lost connection")

    return [
        SagaStep(step.name, fail) if step.name == "pull_carts" else step
        for step in build_delete_product_steps(payload)
    ]


def _break_cart_pull(mocker):
    mocker.patch("shopeasy.products.cascade.build_delete_product_steps", _carts_unreachable)
    mocker.patch.dict(SAGA_REGISTRY, {DELETE_PRODUCT_SAGA: _carts_unreachable})


def test_unreferenced_product_is_hard_deleted(client, db_session, make_user, make_product, auth_headers):
    product = make_product()
    product_id = product.id
    shopper = bearer(make_user())
    _fill_cart_and_wishlist(client, shopper, product)

    response = client.delete(f"/api/products/listings/{product_id}", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["result"] == "deleted"
    assert db_session.get(Product, product_id) is None
    assert db_session.query(Listing).filter(Listing.product_id == product_id).count() == 0
    assert db_session.query(CartItem).filter(CartItem.product_id == product_id).count() == 0
    assert db_session.query(WishlistItem).filter(WishlistItem.product_id == product_id).count() == 0

    saga = db_session.query(SagaLog).filter(SagaLog.saga_type == "delete_product").one()
    assert str(saga.id) == body["saga_id"]
    assert saga.status == SAGA_COMPLETED
    assert saga.completed_steps == ["delete_product", "pull_owner_listing", "pull_carts", "pull_wishlists"]


def test_ordered_product_is_only_deactivated(client, db_session, make_user, make_product, auth_headers, admin_headers):
    product = make_product(stock=5)
    shopper = bearer(make_user())
    client.post("/api/orders/", headers=shopper, json={
        "items": [{"product_id": str(product.id), "quantity": 1}],
        "shipping_address": SHIPPING,
    })
    _fill_cart_and_wishlist(client, shopper, product)

    response = client.delete(f"/api/admin/products/{product.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["result"] == "deactivated"
    assert product.is_active is False
    assert db_session.query(CartItem).filter(CartItem.product_id == product.id).count() == 1
    assert db_session.query(Listing).filter(Listing.product_id == product.id).count() == 1
    assert client.get(f"/api/products/{product.id}").status_code == 404

    cart = client.get("/api/cart/", headers=shopper).json()
    assert cart["cart"][0]["available"] is False
    assert cart["total_price"] == 0.0


def test_only_owner_can_delete_listing(client, make_user, make_product):
    product = make_product()
    response = client.delete(f"/api/products/listings/{product.id}", headers=bearer(make_user()))
    assert response.status_code == 403


def test_delete_missing_product(client, admin_headers):
    response = client.delete("/api/admin/products/00000000-0000-0000-0000-000000000000", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"


def test_partial_cascade_failure_then_resume(client, db_session, mocker, make_user, make_product, admin_headers):
    product = make_product()
    product_id = product.id
    shopper = bearer(make_user())
    _fill_cart_and_wishlist(client, shopper, product)
    _break_cart_pull(mocker)

    response = client.delete(f"/api/admin/products/{product_id}", headers=admin_headers)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "PARTIAL_CASCADE_FAILURE"
    assert error["context"]["completed_steps"] == ["delete_product", "pull_owner_listing"]
    assert error["context"]["failed_step"] == "pull_carts"
    saga_id = error["context"]["saga_id"]

    # Completed steps stay applied; the leftovers read as unavailable
    assert db_session.get(Product, product_id) is None
    cart = client.get("/api/cart/", headers=shopper).json()["cart"]
    assert cart[0]["available"] is False
    assert cart[0]["product"] is None
    wishlist = client.get("/api/wishlist/", headers=shopper).json()["wishlist"]
    assert wishlist[0]["available"] is False

    incomplete = client.get("/api/admin/sagas", headers=admin_headers, params={"incomplete": True}).json()
    assert [s["id"] for s in incomplete["sagas"]] == [saga_id]
    assert incomplete["sagas"][0]["status"] == SAGA_FAILED

    still_broken = client.post(f"/api/admin/sagas/{saga_id}/resume", headers=admin_headers)
    assert still_broken.status_code == 500
    assert still_broken.json()["error"]["code"] == "PARTIAL_CASCADE_FAILURE"

    mocker.stopall()
    resumed = client.post(f"/api/admin/sagas/{saga_id}/resume", headers=admin_headers)

    assert resumed.status_code == 200
    assert resumed.json()["saga"]["status"] == SAGA_COMPLETED
    assert db_session.query(CartItem).filter(CartItem.product_id == product_id).count() == 0
    assert db_session.query(WishlistItem).filter(WishlistItem.product_id == product_id).count() == 0
    assert client.get("/api/admin/sagas", headers=admin_headers, params={"incomplete": True}).json()["sagas"] == []
