"""
OpenAI embedding generation for semantic supplier search.

Uses text-embedding-3-small with 1536 dimensions by default.
"""

from typing import Optional

from openai import OpenAI

from procurement_agent.config import get_config
from procurement_agent.exceptions import ConfigurationError


_client: Optional[OpenAI] = None


def get_openai_client() -> OpenAI:
    """Get the OpenAI client instance used for embeddings."""
    global _client
    if _client is None:
        config = get_config()
        if not config.primary_api_keys:
            raise ConfigurationError("No OpenAI key available for embeddings")
        _client = OpenAI(api_key=config.primary_api_keys[0], base_url=config.primary_base_url)
    return _client


async def generate_embedding(text: str) -> list[float]:
    """
    Generate an embedding vector for the given text.

    Args:
        text: Text to embed (supplier description, search query, etc.)

    Returns:
        List of floats representing the embedding vector
    """
    config = get_config()
    client = get_openai_client()

    response = client.embeddings.create(
        model=config.embedding_model,
        input=text,
        dimensions=config.embedding_dimensions,
    )

    return response.data[0].embedding
