"""Tests for the card intake HTTP endpoints."""

from card_intake import api


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_extract_from_reply_text(test_client, prose_reply):
    response = test_client.post("/card/extract", json={"text": prose_reply})
    assert response.status_code == 200
    data = response.json()
    assert data["is_empty"] is False
    assert data["record"]["firstName"] == "John Michael"
    assert data["record"]["dateOfBirth"] == "1987-03-04"
    assert data["record"]["address"] == {
        "street": "123 Main St",
        "city": "Anytown",
        "state": "CA",
        "zipCode": "90210",
    }
    assert "email" not in data["record"]


def test_extract_empty_text(test_client):
    response = test_client.post("/card/extract", json={"text": ""})
    assert response.status_code == 200
    assert response.json() == {"record": {"address": {}}, "is_empty": True}


def test_extract_requires_text(test_client):
    response = test_client.post("/card/extract", json={})
    assert response.status_code == 422


def test_extract_from_envelope(test_client, json_reply):
    envelope = {"choices": [{"message": {"role": "assistant", "content": json_reply}}]}
    response = test_client.post("/card/envelope", json={"envelope": envelope})
    assert response.status_code == 200
    data = response.json()
    assert data["raw_content"] == json_reply
    assert data["record"]["lastName"] == "Gonzalez"
    assert data["record"]["gender"] == "female"


def test_envelope_without_text_is_bad_gateway(test_client):
    response = test_client.post("/card/envelope", json={"envelope": {}})
    assert response.status_code == 502
    assert "message" in response.json()


def test_envelope_error_is_reported(test_client):
    envelope = {"error": {"message": "model overloaded"}}
    response = test_client.post("/card/envelope", json={"envelope": envelope})
    assert response.status_code == 502
    assert response.json()["message"] == "API error: model overloaded"


def test_scan_rejects_non_image_payload(test_client):
    response = test_client.post("/card/scan", json={"image_data": "hello"})
    assert response.status_code == 400
    assert response.json()["received"] == "str"


def test_scan_rejects_unknown_provider(test_client):
    response = test_client.post(
        "/card/scan",
        json={"image_data": "data:image/png;base64,aGk=", "provider": "gemini"},
    )
    assert response.status_code == 422


def test_scan_without_credentials_is_bad_gateway(test_client):
    response = test_client.post(
        "/card/scan", json={"image_data": "data:image/png;base64,aGk=", "provider": "grok"}
    )
    assert response.status_code == 502
    assert response.json()["provider"] == "grok"


def test_scan_runs_reply_through_pipeline(test_client, monkeypatch):
    calls = []

    def fake_scan(image_data, provider=None, model=None):
        calls.append((image_data, provider, model))
        return "First Name: Ann\nLast Name: Lee\nDOB: 2/3/61"

    monkeypatch.setattr(api, "scan_card_image", fake_scan)
    response = test_client.post(
        "/card/scan",
        json={"image_data": "data:image/png;base64,aGk=", "provider": "openai"},
    )
    assert response.status_code == 200
    assert calls == [("data:image/png;base64,aGk=", "openai", None)]
    assert response.json() == {
        "record": {
            "firstName": "Ann",
            "lastName": "Lee",
            "dateOfBirth": "1961-02-03",
            "address": {},
        },
        "raw_content": "First Name: Ann\nLast Name: Lee\nDOB: 2/3/61",
        "is_empty": False,
    }


def test_scan_of_blank_card_is_not_an_error(test_client, monkeypatch):
    monkeypatch.setattr(
        api, "scan_card_image", lambda image_data, provider=None, model=None: "I cannot read this card."
    )
    response = test_client.post("/card/scan", json={"image_data": "data:image/png;base64,aGk="})
    assert response.status_code == 200
    assert response.json()["is_empty"] is True
