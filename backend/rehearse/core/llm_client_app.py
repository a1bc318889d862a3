"""
Lightweight OpenAI-compatible client used for tailored question generation.

Notes:
- Minimal surface: a single generate_text() call, one attempt, no retries.
- Credentials and model come from ``AppConfig``; the client is only built when
  an API key is configured.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from openai import OpenAI

from rehearse.core.config import AppConfig
from rehearse.core.errors import RemoteError


LOGGER = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TIMEOUT_SECONDS = 60.0


class LLMClientApp:
    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        base_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        if client is None:
            client_kwargs: Dict[str, Any] = {"api_key": api_key, "max_retries": 0}
            if base_url:
                client_kwargs["base_url"] = base_url
            client = OpenAI(**client_kwargs)
        self.client = client
        self.model = model

    def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> Dict[str, Any]:
        """Call the chat completion API once.

        Returns a dict with keys: text, usage, model.

        Raises:
            RemoteError: If the request fails or the response carries no text.
        """
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except Exception as e:  # SDK raises a family of APIError subclasses
            LOGGER.error("OpenAI request failed: %s", e)
            raise RemoteError(f"OpenAI API request failed: {e}") from e

        choices = getattr(resp, "choices", None) or []
        content = choices[0].message.content if choices and choices[0].message else None
        if not content:
            raise RemoteError("Invalid response from OpenAI API")

        usage = getattr(resp, "usage", None)
        usage_dict = {
            "total_tokens": getattr(usage, "total_tokens", None),
            "prompt_tokens": getattr(usage, "prompt_tokens", None),
            "completion_tokens": getattr(usage, "completion_tokens", None),
        } if usage is not None else {}
        return {"text": content.strip(), "usage": usage_dict, "model": self.model}


def build_llm_client(config: AppConfig) -> Optional[LLMClientApp]:
    """Return a client when an API key is configured, otherwise None."""
    if not config.openai_api_key:
        return None
    return LLMClientApp(
        config.openai_api_key,
        model=config.openai_model,
        base_url=config.openai_base_url,
    )
