"""MySQL document store."""

from __future__ import annotations

from tola_rates.db.relational_backend import RelationalBackend


class MySQLBackend(RelationalBackend):
    """Relational store using ``LONGTEXT`` bodies and ``ON DUPLICATE KEY`` upserts."""

    schema_sql = """
CREATE TABLE IF NOT EXISTS tola_documents (
    doc_key VARCHAR(64) NOT NULL PRIMARY KEY,
    body LONGTEXT NOT NULL,
    updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
) DEFAULT CHARSET=utf8mb4;
"""

    upsert_sql = """
INSERT INTO tola_documents(doc_key, body, updated_at)
VALUES(:doc_key, :body, :updated_at)
ON DUPLICATE KEY UPDATE body = VALUES(body), updated_at = VALUES(updated_at)
"""


__all__ = ["MySQLBackend"]
