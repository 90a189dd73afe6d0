import pytest


@pytest.mark.asyncio
async def test_quote_in_euro(client):
    response = await client.get("/api/v1/pricing/quote?amount=15000&currency=EUR")
    assert response.status_code == 200
    data = response.json()
    assert data["display"] == "€30.000"
    assert data["value"] == "30.000"
    assert data["is_fallback"] is False


@pytest.mark.asyncio
async def test_quote_by_country_code(client):
    response = await client.get("/api/v1/pricing/quote?amount=15000&currency=US")
    data = response.json()
    assert data["currency"] == "USD"
    assert data["display"] == "$33.000"


@pytest.mark.asyncio
async def test_quote_unknown_currency_falls_back(client):
    response = await client.get("/api/v1/pricing/quote?amount=15000&currency=JPY")
    data = response.json()
    assert data["currency"] == "RON"
    assert data["display"] == "RON 150.00"
    assert data["is_fallback"] is True


@pytest.mark.asyncio
async def test_quote_rejects_negative_amount(client):
    response = await client.get("/api/v1/pricing/quote?amount=-1")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_canonical_amount(client):
    response = await client.post("/api/v1/pricing/canonical", json={"amount": "€30.00", "currency": "EUR"})
    assert response.status_code == 200
    assert response.json()["amount"] == 15000


@pytest.mark.asyncio
async def test_canonical_amount_rejects_garbage(client):
    response = await client.post("/api/v1/pricing/canonical", json={"amount": "thirty", "currency": "EUR"})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_canonical_amount_rejects_amount_beyond_storage(client):
    response = await client.post("/api/v1/pricing/canonical", json={"amount": "1e30", "currency": "RON"})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_quote_rejects_amount_beyond_storage(client):
    response = await client.get(f"/api/v1/pricing/quote?amount={2**63}")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_currencies(client):
    response = await client.get("/api/v1/pricing/currencies")
    codes = [c["code"] for c in response.json()]
    assert codes == ["RON", "EUR", "USD"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
