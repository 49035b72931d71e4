#!/usr/bin/env python3
"""
AI model nodes.

Wraps the OpenAI, Anthropic and Gemini HTTP APIs behind a single node type.
Missing credentials or a failing back-end never fail the run: the node
returns a labeled mock response as a DegradedResult instead.
"""
import dataclasses
import logging
from typing import Any, Callable, Dict, Mapping, Sequence

from agent_builder.engine.data import gather_input
from agent_builder.errors import ConfigurationError, ExternalServiceError
from agent_builder.utils.config import ProviderConfig
from agent_builder.utils.http import post_json
from .base import DegradedResult, Edge, LLMConfig, Node, NodeHandler, NodeType
from .registry import register_handler

logger = logging.getLogger(__name__)

PROVIDER_NAMES = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "gemini": "Gemini",
}

# Model name prefix -> provider, used when no provider is configured
MODEL_PREFIXES = (
    ("gemini", "gemini"),
    ("gpt", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("claude", "anthropic"),
)


def resolve_provider(config: LLMConfig) -> str:
    """Pick the back-end for a node from ``provider`` or the model name"""
    if config.provider:
        provider = config.provider.strip().lower()
        if provider not in PROVIDER_NAMES:
            raise ConfigurationError(f"Unsupported provider: {config.provider}")
        return provider

    model = config.model.lower()
    for prefix, provider in MODEL_PREFIXES:
        if model.startswith(prefix):
            return provider
    raise ConfigurationError(f"Unsupported provider for model: {config.model}")


# ------------------ Provider back-ends ------------------

def call_openai(providers: ProviderConfig, api_key: str, config: LLMConfig,
                prompt: str, timeout: float) -> str:
    data = post_json(
        f"{providers.openai_base_url.rstrip('/')}/chat/completions",
        {
            "model": config.model,
            "messages": [
                {"role": "system", "content": config.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        },
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=timeout,
    )
    try:
        return data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise ExternalServiceError("Unexpected OpenAI response format") from None


def call_anthropic(providers: ProviderConfig, api_key: str, config: LLMConfig,
                   prompt: str, timeout: float) -> str:
    data = post_json(
        f"{providers.anthropic_base_url.rstrip('/')}/messages",
        {
            "model": config.model,
            "system": config.system_prompt,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": min(config.temperature, 1.0),
            "max_tokens": config.max_tokens,
        },
        headers={"x-api-key": api_key, "anthropic-version": providers.anthropic_version},
        timeout=timeout,
    )
    try:
        return "".join(block["text"] for block in data["content"] if block.get("type") == "text")
    except (KeyError, TypeError):
        raise ExternalServiceError("Unexpected Anthropic response format") from None


def call_gemini(providers: ProviderConfig, api_key: str, config: LLMConfig,
                prompt: str, timeout: float) -> str:
    data = post_json(
        f"{providers.gemini_base_url.rstrip('/')}/models/{config.model}:generateContent",
        {
            "systemInstruction": {"parts": [{"text": config.system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": config.max_tokens,
            },
        },
        params={"key": api_key},
        timeout=timeout,
    )
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise ExternalServiceError("Unexpected Gemini response format") from None


BACKENDS: Dict[str, Callable[..., str]] = {
    "openai": call_openai,
    "anthropic": call_anthropic,
    "gemini": call_gemini,
}


def mock_response(provider: str, config: LLMConfig, input_text: str, note: str = "") -> str:
    """Labeled stand-in used when the back-end cannot be reached"""
    note = note or f"Add your {PROVIDER_NAMES[provider]} API key to enable real processing"
    return (
        f'Mock LLM Response ({config.model}): Processed "{input_text}" '
        f"with temperature {config.temperature}. "
        f'System prompt: "{config.system_prompt}". '
        f"[Note: {note}]"
    )


@register_handler(metadata={"category": "core",
                            "description": "OpenAI, Anthropic, Gemini models"})
class LLMHandler(NodeHandler):
    """Sends upstream text to an AI model and returns its reply"""

    node_type = NodeType.LLM

    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> Any:
        config = self.config_of(node)
        settings = context.settings
        if not config.model:
            config = dataclasses.replace(config, model=settings.providers.default_model)
        provider = resolve_provider(config)
        input_text = gather_input(node, edges, results)

        api_key = settings.providers.api_key(provider)
        if api_key is None:
            reason = f"No {PROVIDER_NAMES[provider]} API key configured"
            context.log(f"{node.display_name}: {reason}, returning mock response", "warning")
            return DegradedResult(mock_response(provider, config, input_text), reason)

        context.log(f"{node.display_name}: calling {PROVIDER_NAMES[provider]} ({config.model})")
        try:
            return BACKENDS[provider](settings.providers, api_key, config, input_text,
                                      settings.engine.http_timeout)
        except ExternalServiceError as e:
            logger.warning("LLM node %s fell back to mock response: %s", node.id, e)
            context.log(f"{node.display_name}: {PROVIDER_NAMES[provider]} call failed, "
                        "returning mock response", "warning")
            reason = f"{PROVIDER_NAMES[provider]} request failed: {e}"
            return DegradedResult(mock_response(provider, config, input_text, note=reason), reason)
