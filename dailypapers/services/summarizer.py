from __future__ import annotations

import logging
import time
from typing import Optional
from uuid import uuid4

from openai import OpenAI

from ..config import Settings
from ..env import get_secret
from ..errors import GenerationError
from ..models import Paper, Summary, utcnow
from ..openai_helpers import call_responses, response_text
from ..summary_parser import ParsedSummary, parse_summary_text

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = (
    "You are an expert at summarizing complex AI research for non-technical "
    "audiences. You MUST follow the exact formatting rules provided and "
    "generate exactly 3 points for each section."
)

_USER_PROMPT = """Please analyze the following AI research paper and create a structured summary for non-technical people:

Title: {title}
Abstract: {abstract}
Link: {url}

Your summary MUST follow this EXACT structure and formatting:

1. TL;DR (exactly 3 points):
- [Problem] The problem being solved (max 30 words)
- [Solution] The proposed solution (max 30 words)
- [Impact] Why this matters (max 30 words)

2. Key Innovation (exactly 3 points):
- [Novel Approach] What was done differently (max 30 words)
- [Improvement] How this improves on existing methods (max 30 words)
- [Technical] The main technical achievement in simple terms (max 30 words)

3. Practical Applications (exactly 3 points):
- A real-world use case with a concrete example (max 30 words)
- A second real-world use case (max 30 words)
- A third real-world use case (max 30 words)

4. Limitations & Future Work (exactly 3 points):
- A major limitation or challenge (max 30 words)
- A second limitation or challenge (max 30 words)
- A future improvement or research direction (max 30 words)

5. Key Terms (exactly 3 terms):
Term - Simple business-friendly definition (max 20 words)
Term - Simple business-friendly definition (max 20 words)
Term - Simple business-friendly definition (max 20 words)

Formatting rules: exactly 3 bullet points per section, each starting with a single dash (-), one line per bullet, complete sentences in everyday language."""


def build_prompt(paper: Paper) -> str:
    return _USER_PROMPT.format(
        title=paper.title,
        abstract=paper.abstract or "Not provided",
        url=paper.url,
    )


def new_summary_id(paper_id: str) -> str:
    return f"summary-{paper_id}-{int(time.time() * 1000)}-{uuid4().hex[:12]}"


def build_summary(paper_id: str, parsed: ParsedSummary) -> Summary:
    stamp = utcnow()
    return Summary(
        id=new_summary_id(paper_id),
        paper_id=paper_id,
        tldr=list(parsed.tldr),
        key_innovation=list(parsed.key_innovation),
        practical_applications=list(parsed.practical_applications),
        limitations_future_work=list(parsed.limitations_future_work),
        key_terms=dict(parsed.key_terms),
        created_at=stamp,
        updated_at=stamp,
    )


class SummaryGenerator:
    """One OpenAI call per paper; formatting gaps are repaired, never raised."""

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        *,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        temperature: Optional[float] = 0.3,
        max_output_tokens: Optional[int] = 1200,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "SummaryGenerator":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_summary_model,
            temperature=settings.openai_summary_temperature,
        )

    def client(self) -> OpenAI:
        if self._client is None:
            api_key = self._api_key or get_secret("OPENAI_API_KEY")
            if not api_key:
                raise GenerationError("OPENAI_API_KEY environment variable is required")
            self._client = OpenAI(api_key=api_key)
        return self._client

    def generate(self, paper: Paper) -> Summary:
        client = self.client()
        logger.info("Generating summary for paper %s: %s", paper.id, paper.title)
        try:
            resp = call_responses(
                client,
                self.model,
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(paper)},
                ],
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
            )
        except Exception as exc:
            raise GenerationError(
                f"Summary generation failed for paper_id={paper.id}: {exc}"
            ) from exc

        content = response_text(resp)
        if not content:
            logger.warning(
                "Empty model output for paper %s; every section uses fallbacks", paper.id
            )
        return build_summary(paper.id, parse_summary_text(content))
