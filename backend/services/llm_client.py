"""
LLM Client Service

Routes chat-completion calls to the configured provider:
- groq   -> Groq chat completions
- openai -> OpenAI chat completions
- mock   -> no external call (returns None, callers use their rule-based fallback)

Responsibilities:
- Build the client from an explicit LLMConfig
- Extract choices[0].message.content as plain text
- Never raise: any provider error is logged and reported as None
"""

import traceback
from typing import Dict, List, Optional

from config import LLMConfig, create_llm_client


Message = Dict[str, str]


def _extract_content(response, tag: str) -> Optional[str]:
    """
    Extract completion.choices[0].message.content as stripped text.

    Returns:
        Optional[str]: Content, or None if the response has no usable text
    """
    choices = getattr(response, "choices", None)
    if not choices:
        print(f"[{tag}] ❌ ERROR: Response.choices is empty")
        return None

    message = getattr(choices[0], "message", None)
    if message is None:
        print(f"[{tag}] ❌ ERROR: Choice.message is missing")
        return None

    content = getattr(message, "content", None)
    if content is None or not isinstance(content, str):
        print(f"[{tag}] ❌ ERROR: Invalid content type: {type(content)}")
        return None

    content_stripped = content.strip()
    if not content_stripped:
        print(f"[{tag}] ❌ ERROR: Content is empty")
        return None

    return content_stripped


def call_llm(
    config: LLMConfig,
    messages: List[Message],
    temperature: float = 0.2,
    max_tokens: int = 1024,
    client=None
) -> Optional[str]:
    """
    Call the configured LLM provider with chat messages.

    Args:
        config (LLMConfig): Provider, key and model
        messages (List[Message]): Chat messages ({"role": ..., "content": ...})
        temperature (float): Sampling temperature
        max_tokens (int): Completion token limit
        client: Optional pre-built client (Groq or OpenAI compatible)

    Returns:
        Optional[str]: Response text, or None in mock mode / on failure
    """
    if config.provider == "mock":
        return None

    tag = "Groq" if config.provider == "groq" else "OpenAI"

    if not config.api_key and client is None:
        print(f"[{tag}] ⚠️  No API key configured, skipping LLM call")
        return None

    try:
        if client is None:
            client = create_llm_client(config)

        print(f"[{tag}] Calling {config.model_name} ({len(messages)} messages, max_tokens={max_tokens})")

        response = client.chat.completions.create(
            model=config.model_name,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        )

        content = _extract_content(response, tag)
        if content is not None:
            print(f"[{tag}] ✅ LLM call successful ({len(content)} characters)")
        return content

    except Exception as e:
        print(f"[{tag}] ❌ Error calling {tag} API: {e}")
        print(f"[{tag}] Error type: {type(e).__name__}")
        traceback.print_exc()
        return None
