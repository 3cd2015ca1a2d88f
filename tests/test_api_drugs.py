from meditrack.utils.drug_export import UTF8_BOM

API = "/api/v1"

NEW_DRUG = {
    "code": "D100",
    "name": "Amoxicillin 250mg",
    "category": "Antibiotic",
    "manufacturer": "Acme",
    "price": "10.00",
    "stock": 5,
    "minStockThreshold": 8,
    "expiryDate": "2030-05-31",
    "description": "",
    "sideEffects": "Nausea",
}


def _create(client, headers, **overrides) -> dict:
    response = client.post(f"{API}/drugs", json={**NEW_DRUG, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_and_get_drug(client, pharmacist_headers):
    created = _create(client, pharmacist_headers)

    assert created["code"] == "D100"
    assert created["isLocked"] is False
    assert created["isDeleted"] is False
    assert created["isLowStock"] is True
    assert created["description"] is None
    assert created["createdBy"] == "Paul Pharmacist"
    assert created["history"] == []

    fetched = client.get(f"{API}/drugs/{created['id']}", headers=pharmacist_headers)
    assert fetched.status_code == 200
    assert fetched.json()["data"]["sideEffects"] == "Nausea"


def test_duplicate_code_envelope(client, pharmacist_headers):
    _create(client, pharmacist_headers)

    response = client.post(f"{API}/drugs", json=NEW_DRUG, headers=pharmacist_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "DuplicateCode"
    assert "D100" in body["message"]


def test_invalid_payload_envelope(client, pharmacist_headers, recwarn):
    response = client.post(f"{API}/drugs", json={**NEW_DRUG, "price": "-1"}, headers=pharmacist_headers)

    assert response.status_code == 422
    assert response.json()["success"] is False
    assert response.json()["error"] == "ValidationError"
    assert not [w for w in recwarn if "HTTP_422" in str(w.message)]


def test_update_records_history(client, pharmacist_headers):
    drug = _create(client, pharmacist_headers)

    unchanged = client.put(
        f"{API}/drugs/{drug['id']}", json={"stock": 5, "name": NEW_DRUG["name"]}, headers=pharmacist_headers
    )
    assert unchanged.json()["data"]["history"] == []

    response = client.put(f"{API}/drugs/{drug['id']}", json={"price": "12.50"}, headers=pharmacist_headers)

    assert response.status_code == 200
    history = response.json()["data"]["history"]
    assert len(history) == 1
    assert history[0]["version"] == 1
    assert history[0]["changedBy"] == "Paul Pharmacist"
    assert history[0]["changes"] == [
        {"kind": "decimal", "field": "price", "oldValue": "10.00", "newValue": "12.50"}
    ]


def test_update_cannot_clear_required_field(client, pharmacist_headers):
    drug = _create(client, pharmacist_headers)

    response = client.put(f"{API}/drugs/{drug['id']}", json={"name": None}, headers=pharmacist_headers)

    assert response.status_code == 422


def test_lock_blocks_delete_and_is_admin_only(client, admin_headers, pharmacist_headers):
    drug = _create(client, pharmacist_headers)

    forbidden = client.post(f"{API}/drugs/{drug['id']}/toggle-lock", headers=pharmacist_headers)
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "Forbidden"

    locked = client.post(f"{API}/drugs/{drug['id']}/toggle-lock", headers=admin_headers)
    assert locked.json()["data"] == {"id": drug["id"], "isLocked": True}

    refused = client.delete(f"{API}/drugs/{drug['id']}", headers=pharmacist_headers)
    assert refused.status_code == 409
    assert refused.json()["error"] == "Locked"


def test_recycle_bin_flow(client, admin_headers, pharmacist_headers):
    drug = _create(client, pharmacist_headers)
    drug_url = f"{API}/drugs/{drug['id']}"

    deleted = client.delete(drug_url, headers=pharmacist_headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["deletedBy"] == "Paul Pharmacist"

    active = client.get(f"{API}/drugs", headers=pharmacist_headers).json()["data"]
    binned = client.get(f"{API}/drugs", params={"deleted": True}, headers=pharmacist_headers).json()["data"]
    assert active == []
    assert [d["id"] for d in binned] == [drug["id"]]

    restored = client.post(f"{drug_url}/restore", headers=pharmacist_headers)
    assert restored.json()["data"]["isDeleted"] is False

    client.delete(drug_url, headers=pharmacist_headers)

    unconfirmed = client.delete(f"{drug_url}/permanent", headers=admin_headers)
    assert unconfirmed.status_code == 400
    assert unconfirmed.json()["error"] == "ConfirmationRequired"

    not_admin = client.delete(f"{drug_url}/permanent", params={"confirm": True}, headers=pharmacist_headers)
    assert not_admin.status_code == 403

    purged = client.delete(f"{drug_url}/permanent", params={"confirm": True}, headers=admin_headers)
    assert purged.status_code == 200
    assert purged.json()["success"] is True

    gone = client.get(drug_url, headers=admin_headers)
    assert gone.status_code == 404
    assert gone.json()["error"] == "NotFound"


def test_batch_create_and_batch_delete(client, admin_headers, pharmacist_headers):
    response = client.post(
        f"{API}/drugs/batch",
        json=[
            {**NEW_DRUG, "code": "B1", "category": "Vitamin"},
            {**NEW_DRUG, "code": "B2", "category": "Vitamin"},
            {**NEW_DRUG, "code": "B1"},
        ],
        headers=pharmacist_headers,
    )
    result = response.json()["data"]
    assert result["created"] == 2
    assert result["errors"][0]["index"] == 2
    assert result["errors"][0]["error"] == "DuplicateCode"

    b2 = next(d for d in result["drugs"] if d["code"] == "B2")
    client.post(f"{API}/drugs/{b2['id']}/toggle-lock", headers=admin_headers)

    criterion = {"criterion": {"mode": "category", "category": "Vitamin"}}
    preview = client.post(f"{API}/drugs/batch-delete/preview", json=criterion, headers=pharmacist_headers)
    assert preview.json()["data"]["total"] == 2
    assert preview.json()["data"]["deletable"] == 1
    assert preview.json()["data"]["locked"] == 1

    deleted = client.post(f"{API}/drugs/batch-delete", json=criterion, headers=pharmacist_headers)
    assert deleted.json()["data"] == {"deleted": 1, "skippedLocked": 1, "lockedNames": [b2["name"]]}

    all_locked = client.post(f"{API}/drugs/batch-delete", json={"ids": [b2["id"]]}, headers=pharmacist_headers)
    assert all_locked.status_code == 409
    assert all_locked.json()["error"] == "AllLocked"

    nothing = client.post(
        f"{API}/drugs/batch-delete",
        json={"criterion": {"mode": "manufacturer", "manufacturer": "Nobody"}},
        headers=pharmacist_headers,
    )
    assert nothing.status_code == 404
    assert nothing.json()["error"] == "NoMatch"


def test_batch_delete_needs_exactly_one_target(client, pharmacist_headers):
    response = client.post(f"{API}/drugs/batch-delete", json={}, headers=pharmacist_headers)

    assert response.status_code == 422


def test_bulk_import_preview_and_import(client, pharmacist_headers):
    text = "\n".join(
        [
            "D009, Vitamin C, Supplement, Acme, 19.9, 100, 20, 2025-12-31",
            "D009, Vitamin C",
            "D010, Zinc, Supplement, Acme, abc, 100, 20, 2025-12-31",
        ]
    )

    preview = client.post(f"{API}/drugs/import/preview", json={"text": text}, headers=pharmacist_headers)
    lines = preview.json()["data"]["lines"]
    assert [(line["isValid"], line["reason"]) for line in lines] == [
        (True, None),
        (False, "InsufficientFields"),
        (False, "InvalidNumeric"),
    ]
    assert client.get(f"{API}/drugs", headers=pharmacist_headers).json()["data"] == []

    imported = client.post(f"{API}/drugs/import", json={"text": text}, headers=pharmacist_headers)
    data = imported.json()["data"]
    assert data["valid"] == 1
    assert data["invalid"] == 2
    assert data["batch"]["created"] == 1
    assert data["batch"]["drugs"][0]["description"] == "Bulk import"


def test_alerts(client, pharmacist_headers):
    _create(client, pharmacist_headers, code="LOW", stock=1, expiryDate="2099-01-01")
    _create(client, pharmacist_headers, code="OK", stock=100, expiryDate="2000-01-01")

    low = client.get(f"{API}/drugs/alerts/low-stock", headers=pharmacist_headers).json()["data"]
    expiring = client.get(f"{API}/drugs/alerts/expiring", headers=pharmacist_headers).json()["data"]

    assert [d["code"] for d in low] == ["LOW"]
    assert [d["code"] for d in expiring] == ["OK"]


def test_export_csv(client, pharmacist_headers):
    _create(client, pharmacist_headers)

    response = client.get(f"{API}/drugs/export/csv", headers=pharmacist_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    text = response.content.decode("utf-8")
    assert text.startswith(UTF8_BOM + "Code,Name,Category")
    assert "D100,Amoxicillin 250mg,Antibiotic,Acme,10.00,5,8,2030-05-31," in text
