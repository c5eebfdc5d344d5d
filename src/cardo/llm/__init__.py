"""LLM access for phrase generation and kanji lookup."""

from .gateway import LlmGateway
from .prompts import build_kanji_prompt, build_phrases_prompt

__all__ = ["LlmGateway", "build_kanji_prompt", "build_phrases_prompt"]
