"""Model id → provider. Claude models go to Anthropic, everything else to OpenAI."""

from __future__ import annotations

_PROVIDER_PREFIXES = {
    "claude": "anthropic",
    "gpt": "openai",
    "o1": "openai",
    "o3": "openai",
    "o4": "openai",
}


def get_provider_for_model(model: str) -> str:
    for prefix, provider in _PROVIDER_PREFIXES.items():
        if model.startswith(prefix):
            return provider
    return "openai"
