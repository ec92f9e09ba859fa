"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from card_intake import llm_client
from card_intake.api import app


@pytest.fixture(autouse=True)
def isolated_llm_client(monkeypatch, tmp_path):
    """Keep provider clients and config from leaking between tests."""
    monkeypatch.setenv(llm_client.CONFIG_ENV_VAR, str(tmp_path / "missing.yaml"))
    for name in ("XAI_API_KEY", "GROK_API_KEY", "OPENAI_API_KEY", "OLLAMA_HOST"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(llm_client, "_config", None)
    monkeypatch.setattr(llm_client, "_grok_client", None)
    monkeypatch.setattr(llm_client, "_openai_client", None)
    monkeypatch.setattr(llm_client, "_ollama_client", None)
    yield


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture
def json_reply() -> str:
    """A compliant model reply: prose around a JSON object."""
    return (
        "Here is the information I could read from the card:\n"
        "```json\n"
        "{\n"
        '  "first_name": "Maria",\n'
        '  "last_name": "Gonzalez",\n'
        '  "date_of_birth": "07/22/1979",\n'
        '  "gender": "Female",\n'
        '  "phone": "(555) 201-3344",\n'
        '  "email": "",\n'
        '  "address": {"street": "45 Oak Ave", "city": "Springfield", '
        '"state": "IL", "zip": "62704"},\n'
        '  "member_id": "XWZ123456789",\n'
        '  "insurance_provider": "Blue Cross Blue Shield"\n'
        "}\n"
        "```\n"
        "Let me know if you need anything else."
    )


@pytest.fixture
def prose_reply() -> str:
    """A reply in markdown key/value form, no JSON."""
    return (
        "I was able to read the following from the insurance card:\n"
        "\n"
        "- **Name:** John Michael Smith\n"
        "- **Date of Birth:** March 4th, 1987\n"
        "- **Gender:** MALE\n"
        "- **Phone Number:** 555-123-4567\n"
        "- **Address:** 123 Main St, Anytown, CA 90210\n"
        "- **Member ID:** ABC987654\n"
        "- **Insurance Provider:** Aetna\n"
        "- **Group Number:** 0042\n"
        "\n"
        "The card was issued 01/01/2024 at 10:30 AM."
    )
