"""PostgreSQL document store."""

from __future__ import annotations

from tola_rates.db.relational_backend import RelationalBackend


class PostgresBackend(RelationalBackend):
    """Relational store that upserts with ``ON CONFLICT``."""

    upsert_sql = """
INSERT INTO tola_documents(doc_key, body, updated_at)
VALUES(:doc_key, :body, :updated_at)
ON CONFLICT (doc_key) DO UPDATE
SET body = EXCLUDED.body, updated_at = EXCLUDED.updated_at
"""


__all__ = ["PostgresBackend"]
