import pytest
from fastapi import HTTPException

from services import wishlist_service


def test_empty_wishlist(client, customer, auth):
    res = client.get("/api/wishlist", headers=auth(customer))
    assert res.status_code == 200
    assert res.json()["wishlist"]["items"] == []
    assert client.get("/api/wishlist/count", headers=auth(customer)).json()["count"] == 0


def test_add_and_reject_duplicate(client, customer, auth, make_product):
    product = make_product()
    headers = auth(customer)

    res = client.post("/api/wishlist", json={"product_id": product["product_id"]}, headers=headers)
    assert res.status_code == 200
    items = res.json()["wishlist"]["items"]
    assert len(items) == 1
    assert items[0]["product"]["product_id"] == product["product_id"]

    res = client.post("/api/wishlist", json={"product_id": str(product["_id"])}, headers=headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Product already in wishlist"

    assert client.post("/api/wishlist", json={"product_id": "PRD0999"}, headers=headers).status_code == 404


def test_reads_reflect_current_product_data(client, db, customer, auth, make_product):
    product = make_product(price=10.0)
    headers = auth(customer)
    client.post("/api/wishlist", json={"product_id": product["product_id"]}, headers=headers)

    db["product"].update_one({"_id": product["_id"]}, {"$set": {"last_price": 7.5}})
    items = client.get("/api/wishlist", headers=headers).json()["wishlist"]["items"]
    assert items[0]["product"]["last_price"] == 7.5

    db["product"].delete_one({"_id": product["_id"]})
    assert client.get("/api/wishlist", headers=headers).json()["wishlist"]["items"] == []


def test_check_count_remove_and_clear(client, customer, auth, make_product):
    rose = make_product()
    musk = make_product(product_name="White Musk")
    headers = auth(customer)

    assert client.delete(f"/api/wishlist/item/{rose['product_id']}", headers=headers).status_code == 404
    assert client.delete("/api/wishlist/clear", headers=headers).status_code == 404

    for product in (rose, musk):
        client.post("/api/wishlist", json={"product_id": product["product_id"]}, headers=headers)

    check = client.get(f"/api/wishlist/check/{rose['product_id']}", headers=headers).json()
    assert check == {"success": True, "is_in_wishlist": True, "product_id": rose["product_id"]}
    assert client.get("/api/wishlist/count", headers=headers).json()["count"] == 2

    res = client.delete(f"/api/wishlist/item/{rose['product_id']}", headers=headers)
    assert [i["product"]["product_id"] for i in res.json()["wishlist"]["items"]] == [musk["product_id"]]
    assert client.get(f"/api/wishlist/check/{rose['product_id']}", headers=headers).json()["is_in_wishlist"] is False

    res = client.delete("/api/wishlist/clear", headers=headers)
    assert res.json()["wishlist"]["items"] == []
    assert client.get("/api/wishlist/count", headers=headers).json()["count"] == 0


def test_wishlists_are_per_account(client, customer, other_customer, auth, make_product):
    product = make_product()
    client.post("/api/wishlist", json={"product_id": product["product_id"]}, headers=auth(customer))
    assert client.get("/api/wishlist/count", headers=auth(other_customer)).json()["count"] == 0
    assert client.get("/api/wishlist").status_code == 401


def test_wishlist_service_operations(db, customer, make_product):
    user_id = str(customer["_id"])
    rose = make_product()
    musk = make_product(product_name="White Musk")

    assert wishlist_service.get_wishlist(db, user_id) == {"user_id": user_id, "items": []}
    with pytest.raises(HTTPException) as exc:
        wishlist_service.clear(db, user_id)
    assert exc.value.status_code == 404

    wishlist_service.add_product(db, user_id, rose["product_id"])
    wishlist = wishlist_service.add_product(db, user_id, str(musk["_id"]))
    assert [i["product"]["product_id"] for i in wishlist["items"]] == [rose["product_id"], musk["product_id"]]
    assert wishlist_service.count(db, user_id) == 2

    db["product"].delete_one({"_id": rose["_id"]})
    assert [i["product"]["product_id"] for i in wishlist_service.get_wishlist(db, user_id)["items"]] == [musk["product_id"]]

    assert wishlist_service.contains(db, user_id, musk["product_id"])["is_in_wishlist"] is True
    wishlist_service.remove_product(db, user_id, musk["product_id"])
    assert wishlist_service.contains(db, user_id, musk["product_id"])["is_in_wishlist"] is False
