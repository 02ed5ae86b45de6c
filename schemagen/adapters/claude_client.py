"""
Claude API Client for the AI generation path.
Opaque text-in/text-out collaborator plus a JSON-extracting variant.

DESIGN PRINCIPLES:
- Output is untrusted; callers always run it through the repair pass
- Temperature=0 for reproducible output
- Every call carries a bounded timeout and bounded retry count
- Failures raise GenerationError with the failing target attached
"""
import json
from typing import Any, Optional

import anthropic

from schemagen.config import config
from schemagen.errors import GenerationError
from schemagen.utils.logger import LayerLogger


# System prompt enforcing strict non-fabrication
SYSTEM_PROMPT = """You are a structured data engineer producing schema.org JSON-LD for a WordPress site using Rank Math.

ABSOLUTE RULES:
• Use ONLY facts present in the provided page content and organization info
• Never fabricate FAQs, reviews, ratings, prices, dates or people
• Return ONLY JSON, no markdown, no commentary"""


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fences a model wraps around JSON."""
    if "```json" in text:
        text = text.replace("```json", "")
    return text.replace("```", "")


def extract_balanced_json(text: str) -> Optional[str]:
    """
    First balanced {...} object in text, honoring string literals.

    Returns everything from the first brace when it never balances, or
    None when there is no brace at all.
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\" and in_string:
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return text[start:]


class ClaudeClient:
    """
    Claude API client for schema generation.

    The SDK client is created lazily so the rest of the system runs
    without CLAUDE_API_KEY; is_available() reports whether calls can be made.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[Any] = None,
    ):
        self.logger = LayerLogger("claude_client")
        self.model = model or config.AI_MODEL
        self.max_tokens = max_tokens or config.AI_MAX_TOKENS
        api_key = api_key or config.CLAUDE_API_KEY

        if client is not None:
            self.client = client
        elif not api_key:
            self.logger.log_error("CLAUDE_API_KEY not found in environment", error_type="not_configured")
            self.client = None
        else:
            self.client = anthropic.AsyncAnthropic(
                api_key=api_key,
                timeout=float(config.AI_TIMEOUT),
                max_retries=config.MAX_RETRIES,
            )
            self.logger.log_action("init", "completed", model=self.model)

    def is_available(self) -> bool:
        """Check if Claude client is properly configured."""
        return self.client is not None

    async def call(self, prompt: str, target: Optional[str] = None) -> str:
        """
        Send one prompt and return the response text.

        Args:
            prompt: Full user prompt
            target: URL (or other id) the call is for, attached to errors

        Raises:
            GenerationError: not configured, API failure or empty response
        """
        if not self.client:
            raise GenerationError("Claude API key not configured", target)

        self.logger.log_action("claude_call", "started", target=target, prompt_length=len(prompt))
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            self.logger.log_error(f"Claude API error: {e}", error_type="api_error", target=target)
            raise GenerationError(f"Claude API error: {e}", target) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        ).strip()
        if not text:
            raise GenerationError("Claude returned an empty response", target)

        self.logger.log_action(
            "claude_call",
            "success",
            target=target,
            response_length=len(text),
            tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        return text

    async def call_json(self, prompt: str, target: Optional[str] = None) -> Any:
        """
        call() and parse the first JSON object in the response.

        Raises:
            GenerationError: call failed or no parseable JSON object
        """
        text = await self.call(prompt, target)
        candidate = extract_balanced_json(strip_code_fences(text))
        if candidate is None:
            raise GenerationError("No JSON object in Claude response", target)
        try:
            return json.loads(candidate.strip())
        except ValueError as e:
            self.logger.log_error(f"Invalid JSON from Claude: {e}", error_type="parse_error", target=target)
            raise GenerationError(f"Invalid JSON from Claude: {e}", target) from e
