"""Thin wrapper around the OpenAI chat completions API."""

import logging

import openai

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"


class EmptyCompletionError(RuntimeError):
    """Raised when the model returns no message content."""


def complete(prompt: str, api_key: str, model: str = DEFAULT_MODEL, temperature: float = 0.2) -> str:
    """Send a single user prompt and return the text of the first choice."""
    client = openai.OpenAI(api_key=api_key.strip())
    completion = client.chat.completions.create(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
    )

    choices = completion.choices or []
    if not choices:
        raise EmptyCompletionError(f"No response from {model} (no choices in response)")

    choice = choices[0]
    content = choice.message.content if choice.message else None
    if not content:
        if choice.finish_reason == "content_filter":
            detail = " (content was filtered by safety system)"
        elif choice.finish_reason:
            detail = f" (finish_reason: {choice.finish_reason})"
        else:
            detail = ""
        raise EmptyCompletionError(f"No response from {model}{detail}")
    return content
