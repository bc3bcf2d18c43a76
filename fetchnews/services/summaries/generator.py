"""
Topic Summary Generator

Generates per-topic news summaries using Google Gemini.
Following official Google Generative AI Python SDK documentation:
https://github.com/google-gemini/generative-ai-python
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from fetchnews.config.logging import get_logger
from fetchnews.config.settings import Settings, get_settings
from fetchnews.services.summaries.circuit_breaker import CircuitBreaker

logger = get_logger(__name__)


SUMMARY_SYSTEM_PROMPT = """You write short spoken-style news briefings for a personalized news app.

Constraints:
- Conversational tone, specific details (names, numbers, places)
- No topic headers, titles or labels
- No bullet points; flowing paragraphs only
- Only use facts present in the supplied articles when articles are given
- Stay within the requested word count (±10%)"""


@dataclass
class GeneratedSummary:
    """A generated summary and the articles it drew on."""
    summary: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    source_articles: List[Mapping[str, Any]] = field(default_factory=list)
    fallback: bool = False


class SummaryGenerator:
    """
    Topic summary generator using Google Gemini.

    Features:
    - Prompt built from up to four articles per topic
    - Retries with exponential backoff
    - Circuit breaker around the model call
    - Plain fallback summary when no API key is configured
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        """Initialize the generator."""
        config = config or get_settings()
        self.api_key = config.google_api_key
        self.model_name = config.gemini_model
        self.max_tokens = config.gemini_max_tokens
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=config.breaker_failure_threshold,
            success_threshold=config.breaker_success_threshold,
            timeout_seconds=config.breaker_timeout_seconds,
            reset_timeout_seconds=config.breaker_reset_timeout_seconds,
        )
        self._model: Optional[genai.GenerativeModel] = None

    @property
    def model(self) -> genai.GenerativeModel:
        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=SUMMARY_SYSTEM_PROMPT,
            )
            logger.info("Initialized summary model", model=self.model_name)
        return self._model

    def _build_prompt(
        self,
        topic: str,
        word_count: int,
        articles: Sequence[Mapping[str, Any]],
    ) -> str:
        """Build the user prompt for one topic."""
        prompt = f"Create a {topic} news summary (~{word_count} words).\n"

        if articles:
            prompt += "\nArticles:\n"
            for idx, article in enumerate(articles[:4], 1):
                title = " ".join((article.get("title") or "").split()).rstrip(" -")
                description = " ".join((article.get("description") or "").split())[:150]
                source = article.get("source") or "Unknown"
                if isinstance(source, Mapping):
                    source = source.get("name") or source.get("id") or "Unknown"
                prompt += f"{idx}. **{title}** ({source})\n{description}\n\n"

        return prompt

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
    async def _call_model(self, prompt: str) -> str:
        # Run sync API in thread pool for async compatibility
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=self.max_tokens,
                ),
            ),
        )
        return response.text

    def _fallback(
        self,
        topic: str,
        articles: Sequence[Mapping[str, Any]],
    ) -> GeneratedSummary:
        titles = ". ".join(a.get("title") or "" for a in articles[:3] if a.get("title"))
        summary = f"Here's your {topic} news. {titles}." if titles else f"Here's your {topic} news."
        return GeneratedSummary(
            summary=summary,
            metadata={"fallback": True},
            source_articles=list(articles),
            fallback=True,
        )

    async def generate(
        self,
        topic: str,
        word_count: int,
        articles: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> GeneratedSummary:
        """
        Generate a summary for a topic.

        Args:
            topic: Topic name.
            word_count: Target length in words.
            articles: Optional articles to ground the summary in.

        Returns:
            GeneratedSummary.

        Raises:
            CircuitOpenError: Too many recent model failures.
        """
        articles = list(articles or [])

        if not self.api_key:
            logger.warning("Gemini API key not configured, using simple fallback", topic=topic)
            return self._fallback(topic, articles)

        prompt = self._build_prompt(topic, word_count, articles)
        text = await self.breaker.execute(lambda: self._call_model(prompt))

        logger.info("Generated topic summary", topic=topic, word_count=word_count)

        return GeneratedSummary(
            summary=text.strip(),
            metadata={"model": self.model_name},
            source_articles=articles,
        )


# Singleton instance
summary_generator = SummaryGenerator()
