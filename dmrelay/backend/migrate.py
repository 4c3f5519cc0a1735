"""Create the snapshot table for PostgreSQL-backed persistence."""

from __future__ import annotations

from dmrelay.backend.config import load_settings
from dmrelay.backend.store import SCHEMA_SQL


def main() -> None:
    settings = load_settings()
    if not settings.database_url:
        raise RuntimeError("DMRELAY_DATABASE_URL is required for migration")

    import psycopg

    with psycopg.connect(settings.database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()


if __name__ == "__main__":
    main()
