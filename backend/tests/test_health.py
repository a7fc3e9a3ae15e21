def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["checks"]["api"] == "ok"
    assert payload["checks"]["db"] == "ok"
    assert payload["checks"]["redis"] == "disabled"


def test_metrics_expose_ledger_operations(client):
    response = client.post(
        "/api/v1/inventory",
        json={"sku": "MET-001", "product_name": "Sensor", "quantity": 3, "reorder_level": 1},
    )
    assert response.status_code == 201

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "http_requests_total" in metrics.text
    assert 'ledger_operations_total{operation="create_stock",outcome="OK"}' in metrics.text


def test_responses_carry_request_id(client):
    response = client.get("/api/v1/inventory", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"
