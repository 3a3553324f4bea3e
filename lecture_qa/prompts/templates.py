"""
Prompt templates for answer generation.
"""
from typing import Iterable

ANSWER_WITH_CONTEXT = (
    "Context from lecture: {context}\n\n"
    "Question: {question}\n\n"
    "Provide a detailed answer based on the context above."
)

ANSWER_WITHOUT_CONTEXT = (
    "Question: {question}\n\n"
    "Provide a detailed and comprehensive answer."
)

CHAT_SYSTEM = (
    "You are a helpful teaching assistant for a university lecture. "
    "Answer the student's latest question using the lecture context when it is relevant. "
    "If the context does not cover the question, say so briefly and answer from general knowledge."
)


def build_answer_prompt(question: str, context: str = "") -> str:
    """Prompt for a single exam question."""
    if context:
        return ANSWER_WITH_CONTEXT.format(context=context, question=question)
    return ANSWER_WITHOUT_CONTEXT.format(question=question)


def format_history(messages: Iterable) -> str:
    """Render stored messages as ``User: ...`` / ``AI: ...`` lines."""
    lines = []
    for msg in messages:
        speaker = "User" if msg.type == "user" else "AI"
        lines.append(f"{speaker}: {msg.message}")
    return "\n".join(lines)


def build_chat_prompt(history: str, query: str, context: str) -> str:
    """Prompt for the streaming lecture chat."""
    sections = [CHAT_SYSTEM]
    if context:
        sections.append(f"Lecture context:\n{context}")
    if history:
        sections.append(f"Conversation so far:\n{history}")
    sections.append(f"Student question: {query}")
    return "\n\n".join(sections)
