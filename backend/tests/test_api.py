from decimal import Decimal


API = "/api/v1"


async def create_category(client, **overrides):
    payload = {
        "name": "Switches",
        "specifications": [
            {"name": "Rating", "type": "DROPDOWN", "options": " 6, 10 ,10"},
            {"name": "Modules", "type": "NUMBER"},
        ],
    }
    payload.update(overrides)
    resp = await client.post(f"{API}/categories/", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def create_product(client, category, **overrides):
    specs = {s["name"]: s["id"] for s in category["specifications"]}
    payload = {
        "sku": "SW-6A",
        "name": "6A Switch",
        "category_id": category["id"],
        "price": "45.00",
        "stock": 5,
        "min_stock": 10,
        "specifications": {specs["Rating"]: "6", specs["Modules"]: 1},
    }
    payload.update(overrides)
    resp = await client.post(f"{API}/products/", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok"}


async def test_category_options_are_normalized(client):
    category = await create_category(client)
    assert category["specifications"][0]["options"] == ["6", "10"]
    assert category["specifications"][0]["id"].startswith("spec_")


async def test_category_tree(client):
    parent = await create_category(client, name="Wires", specifications=[])
    await create_category(client, name="House Wire", parent_id=parent["id"], specifications=[])

    resp = await client.get(f"{API}/categories/tree")
    tree = resp.json()
    assert [node["name"] for node in tree] == ["Wires"]
    assert tree[0]["children"][0]["name"] == "House Wire"
    assert tree[0]["children"][0]["level"] == 2


async def test_product_validation_errors(client):
    category = await create_category(client)
    spec_id = category["specifications"][0]["id"]

    resp = await client.post(f"{API}/products/", json={
        "sku": "SW-X", "name": "Switch", "category_id": category["id"],
        "specifications": {spec_id: "16"},
    })

    assert resp.status_code == 422
    fields = {e["field"] for e in resp.json()["errors"]}
    assert fields == {f"specifications.{spec_id}", f"specifications.{category['specifications'][1]['id']}"}


async def test_stock_flow(client):
    category = await create_category(client)
    product = await create_product(client, category)
    assert product["status"] == "LOW_STOCK"

    resp = await client.post(f"{API}/stocks/transactions", json={
        "product_id": product["id"], "type": "STOCK_IN", "quantity": 10, "notes": "restock",
    })
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["product"]["stock"] == 15
    assert body["product"]["status"] == "IN_STOCK"
    assert body["transaction"]["quantity_before"] == 5
    assert body["transaction"]["user_name"] == "system"

    resp = await client.get(f"{API}/stocks/transactions", params={"product_id": product["id"]})
    data = resp.json()
    assert data["total"] == 1
    assert data["data"][0]["product_name"] == "6A Switch"


async def test_rejected_transaction(client):
    category = await create_category(client)
    product = await create_product(client, category)

    resp = await client.post(f"{API}/stocks/transactions", json={
        "product_id": product["id"], "type": "STOCK_OUT", "quantity": 0,
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_QUANTITY"

    resp = await client.post(f"{API}/stocks/transactions", json={
        "product_id": "prd_missing", "type": "STOCK_IN", "quantity": 1,
    })
    assert resp.status_code == 404
    assert resp.json()["code"] == "PRODUCT_NOT_FOUND"


async def test_operator_header(client):
    resp = await client.post(f"{API}/users/", json={"name": "Ravi", "email": "ravi@example.com", "role": "STAFF"})
    assert resp.status_code == 200, resp.text
    user = resp.json()

    category = await create_category(client)
    product = await create_product(client, category)

    resp = await client.post(
        f"{API}/stocks/transactions",
        json={"product_id": product["id"], "type": "STOCK_OUT", "quantity": 2},
        headers={"X-User-Id": str(user["id"])},
    )
    assert resp.json()["transaction"]["user_name"] == "Ravi"

    resp = await client.post(
        f"{API}/stocks/transactions",
        json={"product_id": product["id"], "type": "STOCK_OUT", "quantity": 2},
        headers={"X-User-Id": "999"},
    )
    assert resp.status_code == 401


async def test_product_list_and_filters(client):
    category = await create_category(client)
    await create_product(client, category, sku="SW-1", name="Bell Push")
    await create_product(client, category, sku="SW-2", name="Dimmer", stock=50)

    resp = await client.get(f"{API}/products/", params={"search": "DIM", "limit": 1})
    data = resp.json()
    assert data["total"] == 1
    assert data["total_pages"] == 1
    assert data["data"][0]["sku"] == "SW-2"

    resp = await client.get(f"{API}/products/", params={"status": "LOW_STOCK"})
    assert [p["sku"] for p in resp.json()["data"]] == ["SW-1"]

    resp = await client.get(f"{API}/products/", params={"status": "BROKEN"})
    assert resp.status_code == 400


async def test_missing_product_returns_404(client):
    resp = await client.get(f"{API}/products/prd_missing")
    assert resp.status_code == 404


async def test_delete_category_in_use(client):
    category = await create_category(client)
    await create_product(client, category)

    resp = await client.delete(f"{API}/categories/{category['id']}")
    assert resp.status_code == 409


async def test_reports(client):
    category = await create_category(client)
    await create_product(client, category)

    product = await create_product(client, category, sku="SW-16A")
    await client.post(f"{API}/stocks/transactions", json={
        "product_id": product["id"], "type": "STOCK_OUT", "quantity": 2,
    })

    resp = await client.get(f"{API}/reports/dashboard")
    dashboard = resp.json()
    assert dashboard["low_stock_count"] == 2
    assert Decimal(dashboard["today_sales"]) == Decimal("90.00")
    assert len(dashboard["sales_trend"]) == 7
    assert Decimal(dashboard["sales_trend"][-1]["amount"]) == Decimal("90.00")

    resp = await client.get(f"{API}/reports/", params={"type": "LOW_STOCK"})
    assert [row["sku"] for row in resp.json()] == ["SW-16A", "SW-6A"]

    resp = await client.get(f"{API}/reports/", params={"type": "SALES"})
    assert resp.status_code == 422


async def test_audit_logs(client):
    category = await create_category(client)
    await create_product(client, category)

    resp = await client.get(f"{API}/audit-logs/", params={"resource_type": "product"})
    data = resp.json()
    assert data["total"] == 1
    assert data["data"][0]["action"] == "create"
    assert data["data"][0]["action_display"] == "创建"

    resp = await client.get(f"{API}/audit-logs/", params={"start_date": "2020/01/01"})
    assert resp.status_code == 400


async def test_out_of_range_numbers_are_rejected(client):
    category = await create_category(client)
    product = await create_product(client, category)

    resp = await client.post(f"{API}/stocks/transactions", json={
        "product_id": product["id"], "type": "STOCK_IN", "quantity": 2 ** 40,
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_QUANTITY"

    resp = await client.get(f"{API}/products/{product['id']}")
    assert resp.json()["stock"] == 5

    resp = await client.post(f"{API}/products/", json={
        "sku": "SW-BIG", "name": "Big", "category_id": category["id"], "stock": 2 ** 40,
        "specifications": {s["id"]: "6" if s["type"] == "DROPDOWN" else 1 for s in category["specifications"]},
    })
    assert resp.status_code == 422
