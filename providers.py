# backend/providers.py

import json
import logging
from typing import Dict, List, NamedTuple

import requests

from config import settings
from errors import ConfigError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "groq"


class ProviderReply(NamedTuple):
    text: str
    provider: str


def _upstream_message(r: requests.Response) -> str:
    """Best-effort error text from a failed upstream response."""
    try:
        data = r.json()
    except ValueError:
        return r.text or f"HTTP {r.status_code}"
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return err["message"]
        if isinstance(err, str) and err:
            return err
        if data.get("message"):
            return data["message"]
    return r.text or f"HTTP {r.status_code}"


def _post(name: str, url: str, **kwargs) -> requests.Response:
    try:
        r = requests.post(url, timeout=settings.upstream_timeout, **kwargs)
    except requests.exceptions.RequestException as e:
        raise ProviderError(f"{name} error: {e}")
    try:
        r.raise_for_status()
    except requests.exceptions.HTTPError:
        detail = _upstream_message(r)
        logger.warning("%s returned %s: %s", name, r.status_code, detail)
        raise ProviderError(detail)
    return r


def _json(name: str, r: requests.Response):
    try:
        return r.json()
    except ValueError:
        raise ProviderError(f"{name} returned an invalid response")


def flatten_messages(messages: List[Dict[str, str]], upper: bool = False) -> str:
    lines = []
    for m in messages:
        role = m.get("role") or ""
        lines.append(f"{role.upper() if upper else role}: {m.get('content') or ''}")
    return "\n".join(lines)


class Provider:
    """One upstream language model: ``generate(messages) -> text``."""

    name = ""

    def api_key(self) -> str:
        raise NotImplementedError

    def _require_key(self) -> str:
        key = self.api_key()
        if not key:
            raise ConfigError(f"{self.name.upper()}_API_KEY is not set in .env")
        return key

    def generate(self, messages: List[Dict[str, str]]) -> str:
        raise NotImplementedError


class OpenAICompatibleProvider(Provider):
    max_tokens = 500
    temperature = 0.7

    def base_url(self) -> str:
        raise NotImplementedError

    def model(self) -> str:
        raise NotImplementedError

    def generate(self, messages):
        key = self._require_key()
        payload = {
            "model": self.model(),
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        r = _post(self.name, f"{self.base_url()}/chat/completions", headers=headers, json=payload)
        data = _json(self.name, r)
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise ProviderError(f"{self.name} returned no choices")
        return (choices[0].get("message") or {}).get("content") or "No reply"


class GroqProvider(OpenAICompatibleProvider):
    name = "groq"

    def api_key(self):
        return settings.groq_api_key

    def base_url(self):
        return settings.groq_url

    def model(self):
        return settings.groq_model


class DeepSeekProvider(OpenAICompatibleProvider):
    name = "deepseek"

    def api_key(self):
        return settings.deepseek_api_key

    def base_url(self):
        return settings.deepseek_url

    def model(self):
        return settings.deepseek_model


class GeminiProvider(Provider):
    """Gemini gets the whole conversation as a single ``ROLE: content`` transcript."""

    name = "gemini"

    def api_key(self):
        return settings.gemini_api_key

    def generate(self, messages):
        key = self._require_key()
        prompt = flatten_messages(messages, upper=True)
        url = f"{settings.gemini_url}/models/{settings.gemini_model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        r = _post(self.name, url, params={"key": key}, json=payload)
        data = _json(self.name, r)

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise ProviderError("gemini returned no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts)


class HuggingFaceProvider(Provider):
    name = "huggingface"

    def api_key(self):
        return settings.hf_api_key

    def generate(self, messages):
        key = self._require_key()
        headers = {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        url = f"{settings.hf_url}/{settings.hf_chat_model}"
        r = _post(self.name, url, headers=headers, json={"inputs": flatten_messages(messages)})
        data = _json(self.name, r)

        if isinstance(data, list) and data and isinstance(data[0], dict):
            text = data[0].get("generated_text")
            if text:
                return text
        return json.dumps(data)


# ─── Lookup table ──────────────────────────────────────────────────────────────
PROVIDERS: Dict[str, Provider] = {
    p.name: p
    for p in (GroqProvider(), GeminiProvider(), DeepSeekProvider(), HuggingFaceProvider())
}


def resolve_provider(provider_id: str = None) -> Provider:
    """Unknown or empty ids are served by groq."""
    return PROVIDERS.get((provider_id or "").strip().lower(), PROVIDERS[DEFAULT_PROVIDER])


def send(provider_id: str, messages: List[Dict[str, str]]) -> ProviderReply:
    provider = resolve_provider(provider_id)
    if provider_id and provider.name != provider_id.strip().lower():
        logger.info("Provider %r not recognised, using %s", provider_id, provider.name)
    text = provider.generate(messages)
    return ProviderReply(text=text, provider=provider.name)
