"""
Prompt Management Module

Plain-text templates for exam answers and lecture chat.
"""

from .templates import build_answer_prompt, build_chat_prompt, format_history

__all__ = ["build_answer_prompt", "build_chat_prompt", "format_history"]
