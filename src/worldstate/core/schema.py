"""
Archive index schema.

One table, ``archive_items``, holds a row per generated artifact. It is a
secondary index over the object store: every row can be rebuilt from the
``images/**.json`` metadata objects by the backfill job.

Architecture:
    ::

        archive_items
        ┌──────────────────┬──────────────────────────────────────────┐
        │ id (PK)          │ DOOM_{YYYYMMDDHHmm}_{paramsHash}_{seed}  │
        │ ts               │ epoch seconds of ``timestamp``           │
        │ timestamp        │ ``YYYY-MM-DDTHH:MM:00Z``                 │
        │ minute_bucket    │ ``YYYY-MM-DDTHH:MM``                     │
        │ params_hash      │ 8 hex                                    │
        │ seed             │ 12 hex                                   │
        │ r2_key (UNIQUE)  │ images/YYYY/MM/DD/{filename}             │
        │ image_url        │ public path of the image                 │
        │ file_size        │ bytes                                    │
        │ mc_rounded_json  │ JSON of the rounded cap map              │
        │ visual_params_json│ JSON of the visual parameter vector     │
        │ prompt, negative │ prompt texts                             │
        └──────────────────┴──────────────────────────────────────────┘

        Indexes: (ts, id) for keyset pagination, ts, params_hash, seed.

Examples:
    >>> from worldstate.core.schema import apply_schema
    >>> apply_schema(conn)

Guardrails:
    ❌ DON'T: Paginate with OFFSET
    ✅ DO: Use the (ts, id) keyset, see storage/archive_index.py

Tags:
    schema, ddl, archive, index
"""

ARCHIVE_TABLE = "archive_items"

ARCHIVE_COLUMNS = (
    "id",
    "ts",
    "timestamp",
    "minute_bucket",
    "params_hash",
    "seed",
    "r2_key",
    "image_url",
    "file_size",
    "mc_rounded_json",
    "visual_params_json",
    "prompt",
    "negative",
)

ARCHIVE_DDL = {
    "archive_items": """
        CREATE TABLE IF NOT EXISTS archive_items (
            id TEXT PRIMARY KEY NOT NULL,
            ts INTEGER NOT NULL,
            timestamp TEXT NOT NULL,
            minute_bucket TEXT NOT NULL,
            params_hash TEXT NOT NULL,
            seed TEXT NOT NULL,
            r2_key TEXT NOT NULL,
            image_url TEXT NOT NULL,
            file_size INTEGER NOT NULL,
            mc_rounded_json TEXT NOT NULL,
            visual_params_json TEXT NOT NULL,
            prompt TEXT NOT NULL,
            negative TEXT NOT NULL
        )
    """,
    "archive_idx_ts_id": """
        CREATE INDEX IF NOT EXISTS idx_archive_ts_id
        ON archive_items(ts, id)
    """,
    "archive_idx_ts": """
        CREATE INDEX IF NOT EXISTS idx_archive_ts
        ON archive_items(ts)
    """,
    "archive_idx_params_hash": """
        CREATE INDEX IF NOT EXISTS idx_archive_params_hash
        ON archive_items(params_hash)
    """,
    "archive_idx_seed": """
        CREATE INDEX IF NOT EXISTS idx_archive_seed
        ON archive_items(seed)
    """,
    "archive_idx_r2_key": """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_archive_r2_key
        ON archive_items(r2_key)
    """,
}


def apply_schema(conn) -> None:
    """
    Create the archive table and its indexes.

    Safe to call multiple times (CREATE IF NOT EXISTS).
    """
    for _name, ddl in ARCHIVE_DDL.items():
        conn.execute(ddl)
    conn.commit()
