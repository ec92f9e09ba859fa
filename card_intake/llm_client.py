import os
import json
import base64
import logging
import mimetypes
from typing import Any, Optional, Literal

import yaml
from dotenv import load_dotenv
from openai import OpenAI
import openai as _openai_module
from ollama import Client
import ollama as _ollama_module
from pydantic import ValidationError

from .extraction.errors import InvalidInputError, VisionServiceError
from .extraction.output_schemas import PatientCardModel
from .extraction.prompts import (
    CARD_EXTRACTION_PROMPT,
    SYSTEM_PROMPT,
    connectivity_check_prompt,
)

load_dotenv()

Provider = Literal["grok", "openai", "ollama"]
SUPPORTED_PROVIDERS = ("grok", "openai", "ollama")

_grok_client = None
_openai_client = None
_ollama_client = None
_config = None

# Default provider and model configurations
DEFAULT_PROVIDER = "grok"
DEFAULT_MODELS = {
    "grok": "grok-2-vision",
    "openai": "gpt-4.1",
    "ollama": "llama3.2-vision",
}
GROK_BASE_URL = "https://api.x.ai/v1"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_TOKENS = 1500

CONFIG_ENV_VAR = "CARD_INTAKE_CONFIG"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def load_config(path: Optional[str] = None) -> dict:
    """Read provider settings from a YAML file.

    The file is optional.  Recognised keys: ``provider``, ``models`` (mapping
    of provider -> model name), ``timeout``, ``ollama_host``.
    """
    config_path = path or os.getenv(CONFIG_ENV_VAR) or "config.yaml"
    try:
        with open(config_path, "r", encoding="utf-8") as file:
            config = yaml.safe_load(file) or {}
    except FileNotFoundError:
        logging.debug(f"No config file at {config_path}, using defaults")
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"{config_path} must contain a YAML mapping")
    return config


def get_config() -> dict:
    """Lazily load and return the provider configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def resolve_provider(provider: Optional[str] = None) -> str:
    provider = provider or get_config().get("provider") or DEFAULT_PROVIDER
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported vision provider: {provider}")
    return provider


def resolve_model(provider: str, model: Optional[str] = None) -> str:
    if model:
        return model
    configured = get_config().get("models") or {}
    return configured.get(provider) or DEFAULT_MODELS[provider]


def _timeout() -> float:
    return float(get_config().get("timeout", DEFAULT_TIMEOUT))


# ---------------------------------------------------------------------------
# Client initialisation
# ---------------------------------------------------------------------------


def init_grok() -> Optional[OpenAI]:
    """Initialize an xAI Grok client (OpenAI-compatible API) from XAI_API_KEY."""
    api_key = os.getenv("XAI_API_KEY") or os.getenv("GROK_API_KEY")
    if not api_key:
        logging.warning("XAI_API_KEY environment variable not set.")
        return None

    try:
        return OpenAI(api_key=api_key, base_url=GROK_BASE_URL, timeout=_timeout())
    except _openai_module.OpenAIError as e:
        logging.error(f"Failed to initialize Grok client: {e}")
        return None


def init_openai() -> Optional[OpenAI]:
    """Initialize OpenAI API client using the OPENAI_API_KEY environment variable."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logging.warning("OPENAI_API_KEY environment variable not set.")
        return None

    try:
        return OpenAI(api_key=api_key, timeout=_timeout())
    except _openai_module.OpenAIError as e:
        logging.error(f"Failed to initialize OpenAI client: {e}")
        return None


def init_ollama() -> Client:
    """Initialize Ollama client using the native Ollama library."""
    host = (
        os.getenv("OLLAMA_HOST")
        or get_config().get("ollama_host")
        or DEFAULT_OLLAMA_HOST
    )
    return Client(host=host, timeout=_timeout())


def get_grok_client() -> Optional[OpenAI]:
    """Lazily initialize and return the Grok client."""
    global _grok_client
    if _grok_client is None:
        _grok_client = init_grok()
    return _grok_client


def get_openai_client() -> Optional[OpenAI]:
    """Lazily initialize and return the OpenAI client."""
    global _openai_client
    if _openai_client is None:
        _openai_client = init_openai()
    return _openai_client


def get_ollama_client() -> Client:
    """Lazily initialize and return the Ollama client."""
    global _ollama_client
    if _ollama_client is None:
        _ollama_client = init_ollama()
    return _ollama_client


def _get_client(provider: str):
    if provider == "grok":
        client = get_grok_client()
    elif provider == "openai":
        client = get_openai_client()
    else:
        client = get_ollama_client()
    if client is None:
        raise VisionServiceError(f"{provider} client not available", provider=provider)
    return client


# ---------------------------------------------------------------------------
# Image payloads
# ---------------------------------------------------------------------------


def validate_image_data(image_data: Any) -> None:
    """Reject anything that is not a base64 ``data:image/...`` URL."""
    if not isinstance(image_data, str) or not image_data.strip():
        raise InvalidInputError(
            "No image data provided", received=type(image_data).__name__
        )
    if not image_data.startswith("data:image") or "base64," not in image_data:
        raise InvalidInputError(
            "Invalid image format. Expected a base64 data URL", received="str"
        )


def load_image_as_data_url(image_path: str) -> str:
    """Read *image_path* and return it as a base64 data URL."""
    mime_type, _ = mimetypes.guess_type(image_path)
    if not mime_type or not mime_type.startswith("image/"):
        raise InvalidInputError(
            f"Not an image file: {image_path}", received=mime_type or "unknown"
        )
    with open(image_path, "rb") as f:
        image_bytes = f.read()
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _base64_payload(image_data: str) -> str:
    return image_data.split("base64,", 1)[1]


# ---------------------------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------------------------


def _content_text(content: Any) -> Optional[str]:
    if isinstance(content, str):
        return content if content.strip() else None
    # OpenAI content parts: [{"type": "text", "text": "..."}]
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        ]
        joined = "\n".join(p for p in parts if p)
        return joined or None
    return None


def text_from_envelope(envelope: Any) -> str:
    """Return the text blob carried by a raw provider response.

    Understands OpenAI-compatible chat completions (``choices[0].message``),
    Ollama chat/generate replies (``message.content`` / ``response``), plain
    ``text`` replies and the ``extracted_data`` object some vendors return,
    which is re-serialised as JSON for the extraction pipeline.
    """
    if isinstance(envelope, str):
        return envelope
    if not isinstance(envelope, dict):
        raise VisionServiceError(
            f"Unrecognised response envelope of type {type(envelope).__name__}"
        )

    error = envelope.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise VisionServiceError(f"API error: {message}")

    choices = envelope.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message") or {}
        text = _content_text(message.get("content")) if isinstance(message, dict) else None
        if text:
            return text

    message = envelope.get("message")
    if isinstance(message, dict):
        text = _content_text(message.get("content"))
        if text:
            return text

    for key in ("response", "text", "content"):
        text = _content_text(envelope.get(key))
        if text:
            return text

    extracted = envelope.get("extracted_data")
    if isinstance(extracted, dict):
        return json.dumps(extracted)

    raise VisionServiceError("Response envelope carries no text content")


# ---------------------------------------------------------------------------
# Vision calls
# ---------------------------------------------------------------------------


def _chat_completion_text(
    client: OpenAI, provider: str, model: str, image_data: str, prompt: str
) -> str:
    chat_kwargs = {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_data}},
                ],
            },
        ],
        "temperature": 0.1,
        "max_tokens": DEFAULT_MAX_TOKENS,
        "response_format": PatientCardModel,
    }
    try:
        response = client.chat.completions.parse(**chat_kwargs)
    except (_openai_module.BadRequestError, ValidationError) as e:
        # Not every vision model accepts a schema; retry as plain text
        logging.warning(
            f"{provider} API call failed with response_format: {e}. Retrying without response_format."
        )
        chat_kwargs.pop("response_format")
        response = client.chat.completions.create(**chat_kwargs)

    content = response.choices[0].message.content
    if content is None:
        raise VisionServiceError(f"{provider} API returned no content", provider=provider)
    return content


def _ollama_text(client: Client, model: str, image_data: str, prompt: str) -> str:
    response = client.generate(
        model=model,
        prompt=prompt,
        images=[_base64_payload(image_data)],
        format=PatientCardModel.model_json_schema(),
    )
    content = response.get("response", "")
    if not content:
        raise VisionServiceError("ollama API returned no content", provider="ollama")
    return content


def scan_card_image(
    image_data: str,
    *,
    provider: Optional[Provider] = None,
    model: Optional[str] = None,
    prompt: Optional[str] = None,
) -> str:
    """Send a card image to the vision model and return its reply text.

    Args:
        image_data: base64 data URL (``data:image/png;base64,...``)
        provider: "grok", "openai" or "ollama" (defaults from config)
        model: model name, defaults per provider
        prompt: override for the extraction instruction

    Raises:
        InvalidInputError: *image_data* is not a base64 image data URL.
        VisionServiceError: the provider is unavailable or the call failed.
    """
    validate_image_data(image_data)
    provider = resolve_provider(provider)
    model = resolve_model(provider, model)
    prompt = prompt or CARD_EXTRACTION_PROMPT
    client = _get_client(provider)

    logging.info(f"Sending card image to {provider} {model} ({len(image_data)} chars)")
    try:
        if provider == "ollama":
            text = _ollama_text(client, model, image_data, prompt)
        else:
            text = _chat_completion_text(client, provider, model, image_data, prompt)
    except _openai_module.APITimeoutError as e:
        logging.error(f"{provider} request timed out: {e}")
        raise VisionServiceError("Request timed out", provider=provider) from e
    except _openai_module.OpenAIError as e:
        logging.error(f"{provider} API call failed: {e}")
        raise VisionServiceError(f"{provider} API call failed: {e}", provider=provider) from e
    except (_ollama_module.ResponseError, ConnectionError) as e:
        logging.error(f"Ollama API call failed: {e}")
        raise VisionServiceError(f"ollama API call failed: {e}", provider=provider) from e

    logging.debug(f"{provider} API response: {text[:100]}...")
    return text.strip()


def test_provider(provider: Optional[Provider] = None) -> str:
    """Test provider connectivity with a tiny text-only request."""
    provider = resolve_provider(provider)
    model = resolve_model(provider)
    client = _get_client(provider)
    try:
        if provider == "ollama":
            response = client.generate(model=model, prompt=connectivity_check_prompt())
            text = response.get("response", "").strip()
        else:
            response = client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": connectivity_check_prompt()}],
                max_tokens=20,
            )
            text = (response.choices[0].message.content or "").strip()
    except (_openai_module.OpenAIError, _ollama_module.ResponseError, ConnectionError) as e:
        logging.error("%s API test failed: %s", provider, e)
        raise VisionServiceError(f"{provider} API test failed: {e}", provider=provider) from e
    logging.info(f"{provider} API test successful: {text}")
    return text
