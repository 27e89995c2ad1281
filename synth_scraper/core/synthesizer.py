"""
Program Synthesizer
Asks the code-generation provider for a bespoke BeautifulSoup extraction program and validates its shape
"""

import re
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .artifacts import INPUT_ENV_VAR, OUTPUT_ENV_VAR
from .codegen_client import CodeGenerationClient
from .exceptions import ProviderError, ProviderRateLimited, SynthesisFailure
from .retry import exponential_delays, retry_until

logger = logging.getLogger(__name__)


class ProgramSynthesizer:
    """Generates extraction programs with bounded retries"""

    CAPABILITY_MARKER = 'BeautifulSoup'

    SCHEMA_FIELDS = [
        'title',
        'url',
        'publicationDate',
        'image',
        'summary',
        'readMoreLink',
        'anyOtherUsefulInfo',
    ]

    CONTAINER_KEYS = {
        'blog articles': 'blogPosts',
        'product data': 'products',
    }

    FENCED_CODE = re.compile(r'```[ \t]*(?:python|py)?[ \t]*\n(.*?)```', re.DOTALL | re.IGNORECASE)
    TRAILING_COMMENTARY = re.compile(
        r'\n[ \t]*(?:This (?:Python |BeautifulSoup )?(?:script|program|code)|'
        r'The (?:above )?(?:script|program|code)|Explanation:|Note:)[\s\S]*$',
        re.IGNORECASE
    )

    def __init__(
        self,
        client: CodeGenerationClient,
        max_attempts: int = 3,
        rate_limit_attempts: int = 3,
        backoff_initial: float = 1.0,
        backoff_cap: float = 8.0,
        marker: Optional[str] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        """
        Initialize Program Synthesizer

        Args:
            client: Code-generation collaborator
            max_attempts: Fresh calls allowed for invalid-shape responses
            rate_limit_attempts: Calls allowed while the provider keeps rate limiting
            backoff_initial: First rate-limit delay in seconds (doubles each time)
            backoff_cap: Largest rate-limit delay in seconds
            marker: Substring every accepted program must contain
            sleep: Awaitable sleep used for backoff (injectable for tests)
        """
        self.client = client
        self.max_attempts = max_attempts
        self.rate_limit_attempts = rate_limit_attempts
        self.backoff_initial = backoff_initial
        self.backoff_cap = backoff_cap
        self.marker = marker or self.CAPABILITY_MARKER
        self.sleep = sleep

    async def synthesize(self, content_snippet: str, category: str) -> str:
        """
        Produce validated program source for one page

        Args:
            content_snippet: Bounded slice of the page's main content
            category: Requested content category (e.g. 'blog articles')

        Returns:
            Program source, stripped of response formatting

        Raises:
            SynthesisFailure: rate limits exhausted, or no valid program after max_attempts
        """
        messages = self.build_messages(content_snippet, category)
        logger.info(f" Synthesizing program for '{category}' ({len(content_snippet)} chars of content)")

        async def attempt(number: int) -> Optional[str]:
            logger.info(f"   Attempt {number}/{self.max_attempts}: requesting program")
            try:
                text = await self._request_with_backoff(messages)
            except ProviderRateLimited:
                raise
            except ProviderError as e:
                logger.warning(f"    Provider error on attempt {number}: {e}")
                return None

            source = self.clean_response(text)
            problem = self.validate(source)
            if problem:
                logger.warning(f"    Invalid program on attempt {number}: {problem}. Retrying...")
                return None
            return source

        try:
            outcome = await retry_until(
                attempt,
                max_attempts=self.max_attempts,
                accept=lambda source: source is not None,
                label="synthesis"
            )
        except ProviderRateLimited as e:
            raise SynthesisFailure(
                f"Rate limit not lifted after {self.rate_limit_attempts} attempts",
                reason='rate_limited',
                attempts=self.rate_limit_attempts
            ) from e

        if not outcome.accepted:
            raise SynthesisFailure(
                f"No valid program after {outcome.attempts} attempts",
                reason='invalid_response',
                attempts=outcome.attempts
            )

        logger.info(f"    Accepted program on attempt {outcome.attempts} ({len(outcome.value)} chars)")
        return outcome.value

    async def _request_with_backoff(self, messages: List[Dict[str, str]]) -> str:
        """One logical provider call, retried with exponential backoff while rate limited"""
        async def call(number: int) -> str:
            try:
                return await self.client.generate(messages)
            except ProviderRateLimited:
                logger.warning(f"⏳ Rate limit hit (call {number}/{self.rate_limit_attempts})")
                raise

        outcome = await retry_until(
            call,
            max_attempts=self.rate_limit_attempts,
            delays=exponential_delays(self.backoff_initial, 2.0, self.backoff_cap),
            retry_on=(ProviderRateLimited,),
            sleep=self.sleep,
            label="generation"
        )
        if not outcome.accepted:
            raise outcome.last_error
        return outcome.value

    def build_messages(self, content_snippet: str, category: str) -> List[Dict[str, str]]:
        container = self.container_key(category)
        fields = ',\n'.join(f'            "{name}": "..."' for name in self.SCHEMA_FIELDS)

        system = (
            "You are an expert web scraping developer. You analyze HTML and write standalone "
            f"Python programs that use BeautifulSoup to extract content such as \"{category}\"."
        )
        user = f"""Analyze the following HTML and determine the best way to extract the content related to "{category}".

Write a complete Python 3 program that:
1. Imports json and os, and `from bs4 import BeautifulSoup`.
2. Reads the page HTML from the file whose path is in the environment variable {INPUT_ENV_VAR}.
3. Parses it with BeautifulSoup(html, "html.parser") and finds the element that wraps each item.
   Assign the wrapping selector dynamically from the HTML below, do not guess generic classes only.
4. Extracts titles (h1, h2, h3), summaries, URLs (a[href]), publication dates and images (img[src]).
5. Writes the result as JSON (utf-8) to the file whose path is in the environment variable {OUTPUT_ENV_VAR}.

The JSON must be structured like this, with null for missing values:
{{
    "{container}": [
        {{
{fields}
        }}
    ]
}}

---- HTML ----
{content_snippet}
--------------

Respond only with the Python program, ready to be executed, no description or explanation."""

        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user}
        ]

    def container_key(self, category: str) -> str:
        """'blog articles' -> 'blogPosts', unknown categories -> camelCase"""
        normalized = ' '.join(category.lower().split())
        if normalized in self.CONTAINER_KEYS:
            return self.CONTAINER_KEYS[normalized]
        words = re.findall(r'[a-z0-9]+', normalized) or ['items']
        return words[0] + ''.join(word.capitalize() for word in words[1:])

    def clean_response(self, response_text: str) -> str:
        """Strip code fences and trailing natural-language commentary"""
        text = response_text.strip()

        match = self.FENCED_CODE.search(text)
        if match:
            text = match.group(1)
        elif text.startswith('```'):
            # opening fence without a closing one (truncated reply)
            text = text.split('\n', 1)[1] if '\n' in text else ''
        text = text.replace('```', '').strip()

        if not self._compiles(text):
            stripped = self.TRAILING_COMMENTARY.sub('', text).strip()
            if stripped != text:
                logger.debug("    Removed trailing commentary from response")
                text = stripped

        return text

    def validate(self, source: str) -> Optional[str]:
        """
        Check the shape of a cleaned program

        Returns:
            None when valid, otherwise a short reason
        """
        if not source:
            return "empty response"
        if self.marker not in source:
            return f"missing capability marker '{self.marker}'"
        if not self._compiles(source):
            return "not valid Python"
        return None

    @staticmethod
    def _compiles(source: str) -> bool:
        try:
            compile(source, '<generated>', 'exec')
            return True
        except (SyntaxError, ValueError):
            return False
