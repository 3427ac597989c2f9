import re
import logging
from typing import Dict, List, Optional

import requests

from logtrack.config import Settings, settings

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r'```(?:json)?\s*([\s\S]+?)\s*```')

class ChatCompletionClient:
    """Minimal client for an OpenAI-compatible chat completions endpoint"""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        api_url: str = "https://api.openai.com/v1/chat/completions",
        timeout: float = 5.0
    ):
        if not api_key:
            raise ValueError("API key is required for the chat completion client")

        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings = settings) -> Optional["ChatCompletionClient"]:
        """Build a client from settings, or None when no API key is configured"""
        if not config.OPENAI_API_KEY:
            return None
        return cls(
            api_key=config.OPENAI_API_KEY,
            model=config.OPENAI_MODEL,
            api_url=config.OPENAI_API_URL,
            timeout=config.EXTERNAL_PARSER_TIMEOUT
        )

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0,
        max_tokens: int = 2000
    ) -> str:
        """
        Send a chat request and return the first choice's content.
        Raises requests.RequestException on transport/HTTP errors and
        ValueError on a malformed response body.
        """
        response = requests.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            timeout=self.timeout
        )
        response.raise_for_status()
        body = response.json()

        try:
            return body["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ValueError(f"Unexpected chat completion response: {str(body)[:200]}") from e

def strip_code_fence(content: str) -> str:
    """Models often wrap JSON answers in markdown fences"""
    match = CODE_FENCE.search(content)
    return match.group(1) if match else content.strip()
