"""Text-generation client and prompt builders."""

from llm.client import (
    CompletionClient,
    CompletionConfig,
    CompletionFailureError,
    MissingCredentialError,
    RetryPolicy,
    extract_generated_text,
)

__all__ = [
    "CompletionClient",
    "CompletionConfig",
    "CompletionFailureError",
    "MissingCredentialError",
    "RetryPolicy",
    "extract_generated_text",
]
