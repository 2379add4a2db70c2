"""Thin OpenAI wrapper for JSON-schema structured output."""

import logging
from typing import Any

from openai import OpenAI, OpenAIError

from scrapehub.config import Settings

logger = logging.getLogger(__name__)


class CollaboratorError(RuntimeError):
    """An external classification/parsing/scoring call failed or returned unusable output."""


def get_openai_client(settings: Settings) -> OpenAI:
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )


def request_structured_output(
    client: OpenAI,
    model: str,
    prompt: str,
    schema_name: str,
    schema: dict[str, Any],
) -> str:
    """Send a prompt with a strict JSON schema and return the raw JSON text.

    Raises CollaboratorError on API failure, refusal or an empty reply.
    """
    try:
        completion = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "schema": schema,
                    "strict": True,
                },
            },
        )
    except OpenAIError as e:
        raise CollaboratorError(f"OpenAI request for {schema_name} failed: {e}") from e

    if not completion.choices:
        raise CollaboratorError(f"OpenAI returned no choices for {schema_name}")

    message = completion.choices[0].message
    if getattr(message, "refusal", None):
        raise CollaboratorError(f"OpenAI refused {schema_name}: {message.refusal}")

    if not message.content:
        raise CollaboratorError(f"OpenAI returned empty {schema_name} response")

    return message.content
