"""Best-effort flavor text for move outcome messages.

The generator is an optional capability: any callable taking a prompt and
returning text, raising ``EnrichmentUnavailable`` when it cannot help.
Callers in this module always fall back to a fixed message pool, so a
failing generator never blocks a move.
"""
import logging
import random
from typing import Callable, Dict, Optional

import httpx

from familygames.errors import EnrichmentUnavailable

logger = logging.getLogger(__name__)

FlavorText = Callable[[str], str]

FIRST_MELD_FALLBACKS = [
    "A wildcard saved today is a gift for the rest of the match.",
    "That opening was as bright as the table lights!",
    "From one city to another, that meld crossed every border.",
    "Patience pays off, at the table and everywhere else.",
    "What a move! The table is officially open.",
]

MAX_TOKENS = 120


class FlavorTextClient:
    """Query an OpenAI-compatible chat completions endpoint for a short text."""

    def __init__(self, base_url: str, model: str, api_key: str = '', timeout: float = 10.0,
                 client: Optional[httpx.Client] = None):
        self.base_url = base_url
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config) -> Optional['FlavorTextClient']:
        url = config.get('FLAVOR_TEXT_URL')
        if not url:
            return None
        return cls(
            url,
            config.get('FLAVOR_TEXT_MODEL', ''),
            api_key=config.get('FLAVOR_TEXT_API_KEY', ''),
            timeout=float(config.get('FLAVOR_TEXT_TIMEOUT_SEC', 10)),
        )

    def __call__(self, prompt: str) -> str:
        return self.generate(prompt)

    def generate(self, prompt: str) -> str:
        url = f"{self.base_url.rstrip('/')}/chat/completions"
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": MAX_TOKENS,
            "temperature": 0.9,
        }
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        client = self._client or httpx.Client(timeout=self.timeout)
        try:
            response = client.post(url, json=payload, headers=headers or None, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise EnrichmentUnavailable(f"Flavor text request failed: {exc}") from exc
        finally:
            if client is not self._client:
                client.close()

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise EnrichmentUnavailable("Invalid flavor text response format") from exc
        if content is not None and not isinstance(content, str):
            raise EnrichmentUnavailable("Invalid flavor text response format")
        text = (content or "").strip().replace('"', '')
        if not text:
            raise EnrichmentUnavailable("Flavor text generator returned an empty response")
        return text


def first_meld_message(flavor: Optional[FlavorText], player_name: str, rng=random) -> str:
    """Celebrate a player's opening meld, falling back to the fixed pool."""
    if flavor is not None:
        prompt = (
            "Act as a playful commentator for a two-player tile rummy match played at a distance. "
            f"The player '{player_name}' just laid down their first meld. "
            "Write one short, cheerful sentence celebrating the moment. Reply with the message only."
        )
        try:
            return flavor(prompt)
        except EnrichmentUnavailable as exc:
            logger.warning("[flavor-fallback] first meld for %s: %s", player_name, exc)
    return rng.choice(FIRST_MELD_FALLBACKS)


def generate_phrase(flavor: Optional[FlavorText], category: str,
                    min_len: int = 20, max_len: int = 30) -> Optional[str]:
    """Ask the generator for a wheel phrase; None when unavailable or out of bounds."""
    if flavor is None:
        return None
    prompt = (
        f"Generate a phrase for a Wheel of Fortune style game in the category \"{category}\". "
        "It must be understandable by teenagers and refer to something from the last 15 years. "
        f"It must be between {min_len} and {max_len} characters long including spaces. "
        "Reply with the phrase only, in uppercase."
    )
    try:
        phrase = flavor(prompt).strip().upper()
    except EnrichmentUnavailable as exc:
        logger.warning("[flavor-fallback] phrase for %s: %s", category, exc)
        return None
    if not (min_len <= len(phrase) <= max_len):
        logger.warning("[flavor-fallback] generated phrase length %d out of bounds", len(phrase))
        return None
    if not all(ch.isalpha() or ch == ' ' for ch in phrase):
        logger.warning("[flavor-fallback] generated phrase has non-letter characters")
        return None
    return phrase
