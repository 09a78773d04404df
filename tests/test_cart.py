def add(client, headers, product_ref, quantity=1):
    return client.post("/api/cart/add", json={"product_id": product_ref, "quantity": quantity}, headers=headers)


def test_adding_same_product_merges_lines(client, customer, auth, make_product):
    product = make_product(price=10.0, stock=5)
    headers = auth(customer)

    add(client, headers, product["product_id"], 1)
    res = add(client, headers, str(product["_id"]), 2)
    assert res.status_code == 200
    cart = res.json()["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3
    assert cart["items"][0]["name"] == "Rose Eau de Parfum"
    assert cart["total"] == 30.0
    assert client.get("/api/cart/count", headers=headers).json()["count"] == 3


def test_add_uses_effective_price(client, customer, auth, make_product):
    product = make_product(price=20.0, last_price=15.0)
    res = add(client, auth(customer), product["product_id"], 2)
    assert res.json()["cart"]["items"][0]["price"] == 15.0
    assert res.json()["cart"]["total"] == 30.0


def test_add_enforces_stock(client, customer, auth, make_product):
    product = make_product(stock=2)
    headers = auth(customer)

    res = add(client, headers, product["product_id"], 3)
    assert res.status_code == 400
    assert res.json()["message"] == "Only 2 items available in stock"

    assert add(client, headers, product["product_id"], 2).status_code == 200
    res = add(client, headers, product["product_id"], 1)
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot add more items. Only 2 available in stock"


def test_add_unknown_product(client, customer, auth):
    assert add(client, auth(customer), "PRD0404").status_code == 404


def test_update_checks_current_stock(client, customer, auth, make_product, db):
    product = make_product(stock=10)
    headers = auth(customer)
    item_id = add(client, headers, product["product_id"], 1).json()["cart"]["items"][0]["item_id"]

    res = client.put(f"/api/cart/{item_id}", json={"quantity": 4}, headers=headers)
    assert res.status_code == 200
    assert res.json()["cart"]["total"] == 40.0

    db["product"].update_one({"_id": product["_id"]}, {"$set": {"stock": 2}})
    res = client.put(f"/api/cart/{item_id}", json={"quantity": 3}, headers=headers)
    assert res.status_code == 400

    res = client.put(f"/api/cart/{item_id}", json={"quantity": 0}, headers=headers)
    assert res.status_code == 400
    assert client.put("/api/cart/missing", json={"quantity": 1}, headers=headers).status_code == 404


def test_remove_and_clear(client, customer, auth, make_product):
    rose = make_product()
    musk = make_product(product_name="White Musk", price=8.0)
    headers = auth(customer)
    add(client, headers, rose["product_id"])
    cart = add(client, headers, musk["product_id"], 2).json()["cart"]
    assert cart["total"] == 26.0

    rose_line = next(i for i in cart["items"] if i["name"] == "Rose Eau de Parfum")
    res = client.delete(f"/api/cart/{rose_line['item_id']}", headers=headers)
    assert res.json()["cart"]["total"] == 16.0
    assert client.delete(f"/api/cart/{rose_line['item_id']}", headers=headers).status_code == 404

    res = client.delete("/api/cart", headers=headers)
    assert res.json()["cart"]["items"] == []
    assert res.json()["cart"]["total"] == 0


def test_get_cart_creates_empty_cart(client, customer, auth):
    res = client.get("/api/cart", headers=auth(customer))
    assert res.status_code == 200
    assert res.json()["cart"]["items"] == []
    assert res.json()["cart"]["user_id"] == str(customer["_id"])


def test_anonymous_count_is_zero(client):
    assert client.get("/api/cart/count").json() == {"count": 0}
    assert client.get("/api/cart").status_code == 401
