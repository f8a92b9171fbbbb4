"""LLM completion providers used to categorize citation domains.

Providers return raw completion text. Transport trouble is translated into
:class:`ClassificationTransient` (retryable) or :class:`ClassificationFatal`
here, so no ``httpx`` exception reaches the classifier.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from citation_radar.core.errors import ClassificationFatal, ClassificationTransient
from citation_radar.core.models import CitationCategory

DEFAULT_TIMEOUT = 30.0

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
CEREBRAS_BASE_URL = "https://api.cerebras.ai/v1"

CATEGORY_EXAMPLES: dict[CitationCategory, str] = {
    CitationCategory.corporate: "uber.com",
    CitationCategory.social: "reddit.com",
    CitationCategory.reference: "wikipedia.org",
    CitationCategory.editorial: "techcrunch.com",
    CitationCategory.ugc: "yelp.com",
    CitationCategory.institutional: "harvard.edu",
}


def build_prompt(url: str, domain: str) -> str:
    """The fixed categorization prompt: URL, domain, taxonomy and one example per category."""
    names = ", ".join(c.value for c in CitationCategory)
    examples = "\n".join(f"- {site} → {cat.value}" for cat, site in CATEGORY_EXAMPLES.items())
    return (
        f"Categorize this website into exactly one of these categories: {names}.\n\n"
        f"URL: {url}\n"
        f"Domain: {domain}\n\n"
        f"Examples:\n{examples}\n\n"
        "Respond with ONLY the category name."
    )


class CategoryProvider(Protocol):
    """A text completion endpoint that answers the categorization prompt."""

    name: str

    async def complete(self, url: str, domain: str) -> str: ...


def raise_for_provider_status(name: str, response: httpx.Response) -> None:
    """Map an HTTP error status to the classification error taxonomy."""
    status = response.status_code
    if status < 400:
        return
    if status == 429:
        raise ClassificationTransient(f"{name} API error: 429 Too Many Requests", status=status)
    if status >= 500:
        raise ClassificationTransient(f"{name} API error: {status}", status=status)
    raise ClassificationFatal(f"{name} API error: {status} {response.text[:200]}")


class _HttpProvider:
    name = "provider"

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = "",
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        if not self.api_key:
            raise ClassificationFatal(f"{self.name} API key not configured")
        try:
            if self._client is not None:
                return await self._client.post(url, timeout=self.timeout, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(url, **kwargs)
        except httpx.TimeoutException as e:
            raise ClassificationTransient(f"{self.name} request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ClassificationTransient(f"{self.name} transport error: {e}") from e

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ClassificationTransient(f"{self.name} returned invalid JSON") from e
        return data if isinstance(data, dict) else {}


class GeminiProvider(_HttpProvider):
    """Google Gemini ``generateContent`` (primary provider)."""

    name = "Gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", **kwargs: Any) -> None:
        kwargs.setdefault("base_url", GEMINI_BASE_URL)
        super().__init__(api_key, model, **kwargs)

    async def complete(self, url: str, domain: str) -> str:
        response = await self._post(
            f"{self.base_url}/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json={
                "contents": [{"role": "user", "parts": [{"text": build_prompt(url, domain)}]}],
                # Headroom for the model's reasoning tokens.
                "generationConfig": {"temperature": 0.0, "maxOutputTokens": 150},
            },
        )
        raise_for_provider_status(self.name, response)
        data = self._json(response)

        error = data.get("error")
        if isinstance(error, dict):
            if error.get("code") == 429:
                raise ClassificationTransient("Gemini API error: 429 Too Many Requests", status=429)
            raise ClassificationFatal(f"Gemini API error: {error.get('message', 'Unknown error')}")

        candidates = data.get("candidates") or []
        text = ""
        if candidates and isinstance(candidates[0], dict):
            first = candidates[0]
            parts = (first.get("content") or {}).get("parts") or []
            text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
            text = text or first.get("text", "")
            if not text.strip() and first.get("finishReason") == "SAFETY":
                raise ClassificationFatal("Gemini API blocked content due to safety filters")
        text = text or data.get("text", "")

        if not text.strip():
            raise ClassificationTransient("Empty response from Gemini API")
        return text.strip()


class CerebrasProvider(_HttpProvider):
    """Cerebras ``/v1/completions`` (fallback provider)."""

    name = "Cerebras"

    def __init__(self, api_key: str, model: str = "llama3.1-8b", **kwargs: Any) -> None:
        kwargs.setdefault("base_url", CEREBRAS_BASE_URL)
        super().__init__(api_key, model, **kwargs)

    async def complete(self, url: str, domain: str) -> str:
        response = await self._post(
            f"{self.base_url}/completions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": self.model,
                "prompt": build_prompt(url, domain),
                "max_tokens": 15,
                "temperature": 0.0,
                "stop": ["\n", "."],
            },
        )
        raise_for_provider_status(self.name, response)
        data = self._json(response)

        choices = data.get("choices") or []
        text = ""
        if choices and isinstance(choices[0], dict):
            first = choices[0]
            text = first.get("text") or (first.get("message") or {}).get("content") or ""
        text = text or data.get("text", "")
        if not text and isinstance(data.get("error"), dict):
            raise ClassificationFatal(
                f"Cerebras API error: {data['error'].get('message', 'Unknown error')}"
            )

        if not text.strip():
            raise ClassificationTransient("Empty response from Cerebras API")
        return text.strip()
