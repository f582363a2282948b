"""
AI Client - one entry point for the text backends used by the outreach
drafter and the job board.

  claude             Anthropic Messages API
  deepseek-chat      DeepSeek, OpenAI-compatible chat completions
  deepseek-reasoner  same endpoint, reasoning model

Every request is bounded by AI_TIMEOUT_SECONDS. Backend failures surface as
RuntimeError, a missing key as ValueError; callers fall back to offline text.
"""

import logging
from typing import Optional

import requests
from anthropic import Anthropic

from yongu.config import config

logger = logging.getLogger(__name__)

CLAUDE_MODEL = 'claude-3-5-sonnet-20241022'
DEEPSEEK_MODELS = ('deepseek-chat', 'deepseek-reasoner')
MODEL_CHOICES = ['claude', *DEEPSEEK_MODELS]

DEFAULT_SYSTEM = "You are a professional assistant for a freelance VFX artist."
CONNECT_TIMEOUT_SECONDS = 10


def _api_key(model: str) -> str:
    if model == 'claude':
        return config.ANTHROPIC_API_KEY
    if model in DEEPSEEK_MODELS:
        return config.DEEPSEEK_API_KEY
    return ''


def is_configured(model: str) -> bool:
    """True if the API key needed for model is present."""
    return bool(_api_key(model))


# =============================================================================
# CLAUDE
# =============================================================================

def call_claude(prompt: str, system: Optional[str] = None, max_tokens: int = 2000) -> str:
    if not config.ANTHROPIC_API_KEY:
        raise ValueError("ANTHROPIC_API_KEY not set in environment")

    client = Anthropic(api_key=config.ANTHROPIC_API_KEY, timeout=config.AI_TIMEOUT_SECONDS)
    logger.debug(f"Claude request: {len(prompt)} chars, max_tokens={max_tokens}")
    try:
        message = client.messages.create(
            model=CLAUDE_MODEL,
            max_tokens=max_tokens,
            system=system or DEFAULT_SYSTEM,
            messages=[{"role": "user", "content": prompt}],
        )
        return message.content[0].text
    except Exception as e:
        logger.error(f"Claude API error: {e}")
        raise RuntimeError(f"Failed to call Claude API: {e}") from e


# =============================================================================
# DEEPSEEK
# =============================================================================

def call_deepseek(
    prompt: str,
    model: str = 'deepseek-chat',
    system: Optional[str] = None,
    max_tokens: int = 2000,
) -> str:
    if not config.DEEPSEEK_API_KEY:
        raise ValueError("DEEPSEEK_API_KEY not set in environment")

    messages = [{"role": "system", "content": system}] if system else []
    messages.append({"role": "user", "content": prompt})

    logger.debug(f"DeepSeek request: model={model}, {len(prompt)} chars")
    try:
        response = requests.post(
            f"{config.DEEPSEEK_BASE_URL}/chat/completions",
            json={"model": model, "messages": messages, "max_tokens": max_tokens, "stream": False},
            headers={"Authorization": f"Bearer {config.DEEPSEEK_API_KEY}"},
            timeout=(CONNECT_TIMEOUT_SECONDS, config.AI_TIMEOUT_SECONDS),
        )
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"DeepSeek API error: {e}")
        raise RuntimeError(f"Failed to call DeepSeek API: {e}") from e

    try:
        return response.json()['choices'][0]['message']['content']
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"DeepSeek response parse error: {e}")
        raise RuntimeError(f"Unexpected DeepSeek response format: {e}") from e


# =============================================================================
# ROUTER
# =============================================================================

def call_ai(prompt: str, model: str, system: Optional[str] = None, max_tokens: int = 2000) -> str:
    """Send prompt to the backend named by model ('claude', 'deepseek-chat', 'deepseek-reasoner')."""
    if model == 'claude':
        return call_claude(prompt, system=system, max_tokens=max_tokens)
    if model in DEEPSEEK_MODELS:
        return call_deepseek(prompt, model=model, system=system, max_tokens=max_tokens)
    raise ValueError(f"Unknown AI model '{model}'. Choose from: {', '.join(MODEL_CHOICES)}")
