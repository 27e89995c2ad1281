"""
Code Generation Client
Thin litellm adapter so any supported provider (OpenAI, Gemini, Claude) can write extraction programs
"""

import os
import logging
from typing import Dict, List, Optional

import litellm

from .exceptions import ProviderError, ProviderRateLimited

logger = logging.getLogger(__name__)


API_KEY_ENV_VARS = [
    ('OPENAI_API_KEY', 'openai'),
    ('GEMINI_API_KEY', 'gemini'),
    ('ANTHROPIC_API_KEY', 'claude'),
]


def detect_api_key(quiet: bool = False) -> Optional[str]:
    """
    Auto-detect API key from environment

    Args:
        quiet: Skip the detection log lines
    """
    for env_var, provider in API_KEY_ENV_VARS:
        api_key = os.getenv(env_var)
        if api_key:
            if not quiet:
                logger.info(f" Detected {provider} API key from environment")
            return api_key

    if not quiet:
        logger.warning(" No API key found in environment")
    return None


class CodeGenerationClient:
    """Sends chat messages to the configured model and returns the reply text"""

    DEFAULT_MODELS = {
        'openai': 'gpt-4o',
        'gemini': 'gemini-2.0-flash',
        'claude': 'claude-3-5-sonnet-20241022'
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 2000,
        timeout: float = 120.0
    ):
        """
        Initialize Code Generation Client

        Args:
            api_key: API key for AI provider (auto-detects from env if None)
            model_name: Model to use (auto-selects if None)
            temperature: Generation temperature (0.0 = deterministic)
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or detect_api_key()
        self.model_name = model_name or self._detect_model()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        if self.api_key:
            self._set_api_key_env()

        logger.info(f" Code generation client initialized: {self.model_name}")

    async def generate(self, messages: List[Dict[str, str]]) -> str:
        """
        Request a completion

        Args:
            messages: Chat messages (system + user)

        Returns:
            Raw reply text

        Raises:
            ProviderRateLimited: provider answered with a rate limit
            ProviderError: any other failure, including an empty reply
        """
        try:
            response = await litellm.acompletion(
                model=self.model_name,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout
            )
        except litellm.RateLimitError as e:
            raise ProviderRateLimited(f"Rate limited by {self.model_name}: {e}") from e
        except Exception as e:
            raise ProviderError(f"Completion failed ({type(e).__name__}): {e}") from e

        choices = getattr(response, 'choices', None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise ProviderError("Unexpected response format from provider (no content)")

        return content.strip()

    def _detect_model(self) -> str:
        """Auto-detect model based on available API keys"""
        if os.getenv('OPENAI_API_KEY'):
            return self.DEFAULT_MODELS['openai']
        elif os.getenv('GEMINI_API_KEY'):
            return self.DEFAULT_MODELS['gemini']
        elif os.getenv('ANTHROPIC_API_KEY'):
            return self.DEFAULT_MODELS['claude']

        return self.DEFAULT_MODELS['openai']

    def _set_api_key_env(self) -> None:
        """Set API key in environment based on model"""
        model = self.model_name.lower()
        if 'gpt' in model:
            os.environ['OPENAI_API_KEY'] = self.api_key
        elif 'gemini' in model:
            os.environ['GEMINI_API_KEY'] = self.api_key
        elif 'claude' in model:
            os.environ['ANTHROPIC_API_KEY'] = self.api_key
