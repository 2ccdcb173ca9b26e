"""
LLM Review Engine

This module provides the chat model interface, review prompts and
structured review generation.
"""

from .chat import ChatModel, ChatModelError
from .prompts import PromptBuilder, SYSTEM_PROMPT, format_diff_lines
from .generator import ReviewGenerator, decode_review_payload

__all__ = [
    'ChatModel',
    'ChatModelError',
    'PromptBuilder',
    'SYSTEM_PROMPT',
    'format_diff_lines',
    'ReviewGenerator',
    'decode_review_payload',
]
