"""Tests for category, supplier and supply CRUD."""

from app.models.audit import AuditLog


def _supply_body(category_id, **overrides):
    body = {
        "name": "Nitrile Gloves",
        "category_id": category_id,
        "sku": "NG-001",
        "barcode": "987654321098",
        "unit_of_measure": "box",
        "unit_cost": "8.50",
        "minimum_stock": 100,
        "maximum_stock": 1000,
        "reorder_point": 50,
        "reorder_quantity": 200,
    }
    body.update(overrides)
    return body


class TestCategories:
    def test_create_and_list(self, client, admin_headers, test_supply):
        resp = client.post(
            "/api/v1/categories/", json={"name": "Wound Care", "color": "#EF4444"}, headers=admin_headers
        )
        assert resp.status_code == 201
        assert resp.json()["name"] == "Wound Care"

        items = client.get("/api/v1/categories/", headers=admin_headers).json()["items"]
        assert [c["name"] for c in items] == ["Personal Protective Equipment", "Wound Care"]
        assert items[0]["supply_count"] == 1
        assert items[1]["supply_count"] == 0

    def test_update(self, client, admin_headers, test_category):
        resp = client.put(
            f"/api/v1/categories/{test_category.id}", json={"description": "PPE"}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["description"] == "PPE"
        assert resp.json()["name"] == "Personal Protective Equipment"

    def test_null_name_is_422(self, client, admin_headers, test_category):
        resp = client.put(f"/api/v1/categories/{test_category.id}", json={"name": None}, headers=admin_headers)
        assert resp.status_code == 422

    def test_delete_blocked_while_referenced(self, client, admin_headers, db_session, test_category, test_supply):
        resp = client.delete(f"/api/v1/categories/{test_category.id}", headers=admin_headers)
        assert resp.status_code == 409

        client.delete(f"/api/v1/supplies/{test_supply.id}", headers=admin_headers)
        resp = client.delete(f"/api/v1/categories/{test_category.id}", headers=admin_headers)
        assert resp.status_code == 204
        assert client.get("/api/v1/categories/", headers=admin_headers).json()["items"] == []

    def test_manager_cannot_delete(self, client, make_user, auth_headers_for, test_category):
        from app.core.rbac_policy import Role
        resp = client.delete(
            f"/api/v1/categories/{test_category.id}", headers=auth_headers_for(make_user(Role.MANAGER))
        )
        assert resp.status_code == 403

    def test_unknown_category_is_404(self, client, admin_headers):
        assert client.put("/api/v1/categories/999", json={"name": "X"}, headers=admin_headers).status_code == 404


class TestSuppliers:
    def test_create_defaults(self, client, admin_headers):
        resp = client.post(
            "/api/v1/suppliers/",
            json={"name": "Global Medical Supplies", "contact_email": "orders@globalmed.com"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["performance_rating"] == 3.0
        assert data["average_delivery_time"] == 7
        assert data["is_active"] is True

    def test_invalid_email_is_422(self, client, admin_headers):
        resp = client.post(
            "/api/v1/suppliers/", json={"name": "Bad", "contact_email": "not-an-email"}, headers=admin_headers
        )
        assert resp.status_code == 422

    def test_list_hides_inactive(self, client, admin_headers, test_supplier):
        client.put(f"/api/v1/suppliers/{test_supplier.id}", json={"is_active": False}, headers=admin_headers)
        assert client.get("/api/v1/suppliers/", headers=admin_headers).json()["items"] == []
        items = client.get("/api/v1/suppliers/?include_inactive=true", headers=admin_headers).json()["items"]
        assert [s["name"] for s in items] == ["MedSupply Corp"]

    def test_null_required_fields_are_422(self, client, admin_headers, test_supplier):
        for body in ({"name": None}, {"average_delivery_time": None}):
            resp = client.put(f"/api/v1/suppliers/{test_supplier.id}", json=body, headers=admin_headers)
            assert resp.status_code == 422
        # Optional contact fields can still be cleared
        resp = client.put(f"/api/v1/suppliers/{test_supplier.id}", json={"contact_phone": None}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["contact_phone"] is None

    def test_delete_blocked_while_referenced(self, client, admin_headers, test_supplier, test_supply):
        resp = client.delete(f"/api/v1/suppliers/{test_supplier.id}", headers=admin_headers)
        assert resp.status_code == 409
        detail = client.get(f"/api/v1/suppliers/{test_supplier.id}", headers=admin_headers).json()
        assert detail["supply_count"] == 1


class TestSupplies:
    def test_create_and_audit(self, client, admin_headers, db_session, test_category):
        resp = client.post("/api/v1/supplies/", json=_supply_body(test_category.id), headers=admin_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["sku"] == "NG-001"
        assert data["unit_cost"] == 8.5

        entry = db_session.query(AuditLog).filter(AuditLog.action == "CREATE_SUPPLY").one()
        assert entry.entity_id == str(data["id"])

    def test_duplicate_sku_is_409(self, client, admin_headers, test_category, test_supply):
        resp = client.post(
            "/api/v1/supplies/", json=_supply_body(test_category.id, sku="SM-001"), headers=admin_headers
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "SKU 'SM-001' already exists"

    def test_duplicate_barcode_is_409(self, client, admin_headers, test_category, test_supply):
        resp = client.post(
            "/api/v1/supplies/", json=_supply_body(test_category.id, barcode="123456789012"), headers=admin_headers
        )
        assert resp.status_code == 409

    def test_unknown_category_is_404(self, client, admin_headers):
        resp = client.post("/api/v1/supplies/", json=_supply_body(999), headers=admin_headers)
        assert resp.status_code == 404

    def test_negative_cost_is_422(self, client, admin_headers, test_category):
        resp = client.post(
            "/api/v1/supplies/", json=_supply_body(test_category.id, unit_cost="-1"), headers=admin_headers
        )
        assert resp.status_code == 422

    def test_update_keeps_own_sku(self, client, admin_headers, test_supply):
        resp = client.put(
            f"/api/v1/supplies/{test_supply.id}", json={"sku": "SM-001", "reorder_point": 1500}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.json()["reorder_point"] == 1500

    def test_null_required_fields_are_422(self, client, admin_headers, test_supply):
        for body in ({"sku": None}, {"name": None}, {"unit_cost": None}, {"minimum_stock": None}):
            resp = client.put(f"/api/v1/supplies/{test_supply.id}", json=body, headers=admin_headers)
            assert resp.status_code == 422, body

    def test_barcode_can_be_cleared(self, client, admin_headers, test_supply):
        resp = client.put(f"/api/v1/supplies/{test_supply.id}", json={"barcode": None}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["barcode"] is None

    def test_update_rejects_inverted_stock_bounds(self, client, admin_headers, db_session, test_supply):
        url = f"/api/v1/supplies/{test_supply.id}"
        both = client.put(url, json={"minimum_stock": 500, "maximum_stock": 10}, headers=admin_headers)
        assert both.status_code == 422

        # Stored bounds are 1000..10000
        assert client.put(url, json={"maximum_stock": 500}, headers=admin_headers).status_code == 400
        assert client.put(url, json={"minimum_stock": 20000}, headers=admin_headers).status_code == 400

        db_session.refresh(test_supply)
        assert (test_supply.minimum_stock, test_supply.maximum_stock) == (1000, 10000)

        ok = client.put(url, json={"minimum_stock": 2000}, headers=admin_headers)
        assert ok.status_code == 200
        assert ok.json()["minimum_stock"] == 2000

    def test_pharmacist_can_create_but_not_delete(self, client, make_user, auth_headers_for, test_category, test_supply):
        from app.core.rbac_policy import Role
        headers = auth_headers_for(make_user(Role.PHARMACIST))
        assert client.post("/api/v1/supplies/", json=_supply_body(test_category.id), headers=headers).status_code == 201
        assert client.delete(f"/api/v1/supplies/{test_supply.id}", headers=headers).status_code == 403

    def test_delete_blocked_with_batches(self, client, admin_headers, test_supply, make_batch):
        make_batch(test_supply, 10)
        assert client.delete(f"/api/v1/supplies/{test_supply.id}", headers=admin_headers).status_code == 409

    def test_list_sorted_by_status_with_stock_figures(self, client, viewer_headers, make_supply, make_batch):
        normal = make_supply(name="Alcohol Swabs", reorder_point=10, minimum_stock=20)
        low = make_supply(name="Bandages", reorder_point=10, minimum_stock=100)
        critical = make_supply(name="Catheters", reorder_point=10, minimum_stock=20)
        make_batch(normal, 500, expires_in_days=12)
        make_batch(normal, 100)
        make_batch(low, 50)
        make_batch(critical, 5)

        items = client.get("/api/v1/supplies/", headers=viewer_headers).json()["items"]
        assert [i["name"] for i in items] == ["Catheters", "Bandages", "Alcohol Swabs"]
        assert [i["stock_status"] for i in items] == ["critical", "low", "normal"]

        swabs = items[2]
        assert swabs["current_stock"] == 600
        assert swabs["expiring_quantity"] == 500
        assert swabs["next_expiration"] is not None
        assert swabs["category_name"] == "Personal Protective Equipment"
        assert swabs["supplier_name"] == "MedSupply Corp"

        low_only = client.get("/api/v1/supplies/?low_stock_only=true", headers=viewer_headers).json()["items"]
        assert [i["name"] for i in low_only] == ["Catheters", "Bandages"]

        found = client.get("/api/v1/supplies/?search=band", headers=viewer_headers).json()["items"]
        assert [i["name"] for i in found] == ["Bandages"]

    def test_detail(self, client, viewer_headers, nurse_headers, test_supply, make_batch):
        make_batch(test_supply, 3000, batch_number="LATE", expires_in_days=90)
        make_batch(test_supply, 3000, batch_number="SOON", expires_in_days=10)
        client.post(
            "/api/v1/inventory/movements",
            json={
                "supply_id": test_supply.id,
                "movement_type": "out",
                "quantity": 300,
                "reason": "Ward request",
                "location": "Ward 3",
            },
            headers=nurse_headers,
        )

        data = client.get(f"/api/v1/supplies/{test_supply.id}", headers=viewer_headers).json()
        assert [b["batch_number"] for b in data["batches"]] == ["SOON", "LATE"]
        assert len(data["recent_movements"]) == 1
        analytics = data["analytics"]
        assert analytics["current_stock"] == 5700
        assert analytics["total_value"] == 2850.0
        assert analytics["average_daily_usage"] == 10.0
        assert analytics["days_until_stockout"] == 570
        assert analytics["stock_status"] == "normal"

    def test_unknown_supply_is_404(self, client, viewer_headers):
        assert client.get("/api/v1/supplies/999", headers=viewer_headers).status_code == 404
