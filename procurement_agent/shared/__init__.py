"""Shared infrastructure: Supabase access and embeddings."""
