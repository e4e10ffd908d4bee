"""Thin LiteLLM layer for daytrace's two model calls.

``complete`` answers a single prompt with the ``generation:`` settings and
``embed`` vectorises one text with the ``embedding:`` settings. Both pass the
section's timeout straight to LiteLLM and lean on its retry.
"""

from __future__ import annotations

import os

import litellm

from daytrace.config import EmbeddingCfg, GenerationCfg

litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

# Key variable per provider prefix; None marks local providers.
_KEY_VARS: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """``ollama/llama3`` -> ``ollama``; bare names are OpenAI models."""
    prefix, sep, _ = model.partition("/")
    return prefix.lower() if sep else "openai"


def validate_api_key(model: str) -> None:
    """Raise EnvironmentError when *model*'s provider key is not exported.

    Providers missing from the table are let through; LiteLLM reports their
    credentials itself.
    """
    provider = provider_of(model)
    key_var = _KEY_VARS.get(provider)
    if key_var and not os.getenv(key_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. Set the {key_var} environment variable."
        )


def complete(cfg: GenerationCfg, prompt: str, temperature: float = 0.2, num_retries: int = 2) -> str:
    """Send *prompt* as one user message and return the reply text ("" if empty)."""
    response = litellm.completion(
        model=cfg.model,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=cfg.max_tokens,
        temperature=temperature,
        num_retries=num_retries,
        timeout=cfg.timeout,
    )
    return response.choices[0].message.content or ""


def embed(cfg: EmbeddingCfg, text: str, num_retries: int = 1) -> list[float]:
    response = litellm.embedding(
        model=cfg.model,
        input=[text],
        num_retries=num_retries,
        timeout=cfg.timeout,
    )
    return response.data[0]["embedding"]
