"""
Semantic supplier search: OpenAI embeddings + the ``match_suppliers`` RPC.
"""

import logging

import httpx
import openai
from postgrest.exceptions import APIError

from procurement_agent.exceptions import CollaboratorUnavailable
from procurement_agent.shared.embeddings import generate_embedding
from procurement_agent.shared.supabase_client import Functions, execute_rpc
from procurement_agent.tools import SemanticMatch

logger = logging.getLogger(__name__)

_HIDDEN_COLUMNS = {"id", "similarity", "embedding"}


class SupabaseSemanticSearch:
    async def similarity_search(self, query: str, top_k: int = 5) -> list[SemanticMatch]:
        """
        Find suppliers closest to a free-text query.

        Args:
            query: Free text, e.g. "suppliers similar to [Shanghai Steel Works]"
            top_k: Maximum number of matches

        Returns:
            Matches ordered by similarity, highest first
        """
        try:
            embedding = await generate_embedding(query)
            rows = await execute_rpc(
                Functions.MATCH_SUPPLIERS,
                {"query_embedding": embedding, "match_count": top_k},
            )
        except (APIError, httpx.HTTPError, openai.OpenAIError) as e:
            logger.warning(f"Semantic search failed: {e}")
            raise CollaboratorUnavailable(f"Semantic search failed: {e}") from e

        matches = [
            SemanticMatch(
                id=str(row.get("id")),
                score=float(row.get("similarity") or 0.0),
                metadata={k: v for k, v in row.items() if k not in _HIDDEN_COLUMNS},
            )
            for row in rows or []
        ]
        return sorted(matches, key=lambda m: m.score, reverse=True)[:top_k]
