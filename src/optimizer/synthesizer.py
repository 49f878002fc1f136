# src/optimizer/synthesizer.py
"""
Prompt construction and LLM calls for article rewriting.
"""
from typing import List, Optional, Sequence
from dataclasses import dataclass
import logging

import openai
from openai import OpenAI

from .config import OptimizerConfig
from .exceptions import (
    AuthError,
    OptimizerError,
    RateLimitError,
    SynthesisError,
    TransientNetworkError,
)
from .models import ReferenceDocument
from .utils import truncate

logger = logging.getLogger(__name__)

ORIGINAL_CONTENT_LIMIT = 2000
REFERENCE_CONTENT_LIMIT = 800
MINIMAL_CONTENT_LIMIT = 1500

# 402 is how the Hugging Face router reports exhausted monthly credits
QUOTA_STATUSES = (402, 429)
QUOTA_MARKERS = ("rate limit", "quota", "credits", "exceeded your")


@dataclass(frozen=True)
class GenerationStrategy:
    """One model plus the generation parameters used with it"""
    name: str
    model: str
    max_tokens: int
    temperature: float
    top_p: Optional[float] = None
    repetition_penalty: Optional[float] = None
    minimal: bool = False


def build_strategies(config: OptimizerConfig) -> List[GenerationStrategy]:
    """Primary, fast and minimal-prompt strategies, in escalation order"""
    return [
        GenerationStrategy(
            name="primary",
            model=config.primary_model,
            max_tokens=2048,
            temperature=0.7,
            top_p=0.95,
            repetition_penalty=1.1,
        ),
        GenerationStrategy(
            name="fast",
            model=config.fast_model,
            max_tokens=1500,
            temperature=0.7,
            top_p=0.9,
        ),
        GenerationStrategy(
            name="minimal",
            model=config.minimal_model,
            max_tokens=1024,
            temperature=0.8,
            minimal=True,
        ),
    ]


def build_prompt(title: str, content: str, references: Sequence[ReferenceDocument]) -> str:
    """
    Build the rewrite prompt

    The original body is cut to 2000 characters and each reference to 800;
    "..." marks a cut.
    """
    prompt = f"""You are an expert content writer and SEO specialist. Your task is to rewrite and optimize the following article to match the style and quality of top-ranking articles.

## Original Article
Title: {title}

Content:
{truncate(content, ORIGINAL_CONTENT_LIMIT)}

## Reference Articles (Top-Ranking Examples)

"""
    for index, reference in enumerate(references, start=1):
        prompt += f"""### Reference {index}: {reference.title}
Source: {reference.url}
Content Preview:
{truncate(reference.content, REFERENCE_CONTENT_LIMIT)}

"""

    prompt += """## Your Task

Rewrite the original article with these improvements:
1. Match the professional writing style of the reference articles
2. Improve structure with clear headings and sections
3. Make it more engaging and SEO-friendly
4. Keep the core message intact
5. Use markdown formatting (headings, lists, emphasis)
6. Make it approximately the same length or longer

Write ONLY the optimized article content. Do NOT include a references section - that will be added separately.

Start writing the optimized article now:
"""
    return prompt


def build_minimal_prompt(content: str) -> str:
    """Short last-resort prompt without references"""
    return (
        "Rewrite this article in a professional, engaging style similar to top blog posts:\n\n"
        f"{truncate(content, MINIMAL_CONTENT_LIMIT, marker='')}"
    )


def classify_api_error(error: Exception) -> OptimizerError:
    """
    Map an inference client error to a typed error

    Status codes and SDK exception types decide first; a "rate limit"
    or quota phrase in the message is only consulted when neither applies.
    """
    message = str(error)
    status = getattr(error, 'status_code', None)

    if isinstance(error, openai.RateLimitError) or status in QUOTA_STATUSES:
        return RateLimitError(f"Rate limit exceeded: {message}", cause=error)
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)) or status in (401, 403):
        return AuthError(f"Inference credential rejected: {message}", cause=error)
    if isinstance(error, openai.APIConnectionError):
        return TransientNetworkError(f"Inference API unreachable: {message}", cause=error)
    if isinstance(error, openai.APIStatusError) and status is not None and status >= 500:
        return TransientNetworkError(f"Inference API error {status}: {message}", cause=error)
    # Some providers report exhausted quota only in the message
    if any(marker in message.lower() for marker in QUOTA_MARKERS):
        return RateLimitError(f"Rate limit exceeded: {message}", cause=error)
    return SynthesisError(f"Failed to optimize content: {message}", cause=error,
                          status_code=status or 500)


class ContentSynthesizer:
    """Rewrites articles through an OpenAI-compatible inference endpoint"""

    def __init__(self, config: OptimizerConfig, client: Optional[OpenAI] = None):
        self.config = config
        self.strategies = build_strategies(config)
        if client is None:
            if not config.inference_api_key:
                logger.warning("Hugging Face API key not configured")
            client = OpenAI(
                api_key=config.inference_api_key or "missing",
                base_url=config.inference_base_url,
            )
        self.client = client

    @property
    def primary(self) -> GenerationStrategy:
        return self.strategies[0]

    def _complete(self, strategy: GenerationStrategy, prompt: str) -> str:
        params = {
            "model": strategy.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": strategy.max_tokens,
            "temperature": strategy.temperature,
        }
        if strategy.top_p is not None:
            params["top_p"] = strategy.top_p
        if strategy.repetition_penalty is not None:
            params["extra_body"] = {"repetition_penalty": strategy.repetition_penalty}

        try:
            completion = self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise classify_api_error(e)

        text = (completion.choices[0].message.content or "").strip() if completion.choices else ""
        if not text:
            raise SynthesisError(f"Model {strategy.model} returned empty content")
        return text

    def generate(self,
                 strategy: GenerationStrategy,
                 title: str,
                 content: str,
                 references: Sequence[ReferenceDocument]) -> str:
        """
        Run one generation attempt with the given strategy

        Returns:
            Generated article body, trimmed

        Raises:
            RateLimitError, AuthError, TransientNetworkError, SynthesisError
        """
        if strategy.minimal:
            prompt = build_minimal_prompt(content)
        else:
            prompt = build_prompt(title, content, references)

        logger.info(f"Sending request to {strategy.model} ({strategy.name}, {len(prompt)} prompt chars)...")
        try:
            text = self._complete(strategy, prompt)
        except OptimizerError as e:
            logger.error(f"{strategy.name} optimization error: {e.message}")
            raise

        logger.info("Content optimized successfully")
        return text

    def optimize(self, title: str, content: str, references: Sequence[ReferenceDocument]) -> str:
        """Rewrite with the primary model; no fallback here"""
        return self.generate(self.primary, title, content, references)

    def test_connection(self) -> bool:
        """Minimal generation call for startup diagnostics; never raises"""
        try:
            self.client.chat.completions.create(
                model=self.primary.model,
                messages=[{"role": "user", "content": "Hello, world!"}],
                max_tokens=10,
            )
            logger.info("Inference API connection successful")
            return True
        except Exception as e:
            logger.error(f"Inference API connection failed: {str(e)}")
            return False
