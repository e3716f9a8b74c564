"""Thin wrapper over the external model: one call shape for both SDKs."""

from __future__ import annotations

from typing import Any


async def complete(
    llm_client: Any,  # anthropic.AsyncAnthropic or openai.AsyncOpenAI
    model: str,
    system: str,
    user: str,
    max_tokens: int = 200,
    temperature: float = 0.2,
) -> str:
    """Send one system+user exchange and return the text of the reply."""
    # Support both Anthropic and OpenAI interfaces
    if hasattr(llm_client, "messages"):
        # Anthropic
        response = await llm_client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        return response.content[0].text or ""

    # OpenAI-compatible
    response = await llm_client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
    )
    return response.choices[0].message.content or ""


def strip_code_fences(content: str) -> str:
    """Strip markdown code fences if present (```json ... ```)."""
    stripped = content.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[-1]
        stripped = stripped.rsplit("```", 1)[0].strip()
    return stripped


def describe_task(title: str, description: str, category: str, priority: str) -> str:
    """The task summary both prompts send as the user turn."""
    return (
        f"Task: {title}\n"
        f"Description: {description}\n"
        f"Category: {category}\n"
        f"Priority: {priority}"
    )
