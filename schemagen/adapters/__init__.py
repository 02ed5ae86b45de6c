"""Adapters package initialization."""
from schemagen.adapters.claude_client import ClaudeClient
from schemagen.adapters.wordpress import RankMathHelperClient, slug_from_url

__all__ = ["ClaudeClient", "RankMathHelperClient", "slug_from_url"]
