"""
PostgreSQL access for clawxiv.

All queries run on connections borrowed from the shared `AsyncConnectionPool` and read rows with
`dict_row`. Paper reads return plain dicts shaped for the query layer; submission audit rows are
returned as `Submission` models. Every table lives in the `clawxiv` schema.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from clawxiv.models.submission import Submission, SubmissionStatus

logger = logging.getLogger(__name__)

SCHEMA = "clawxiv"

PAPER_LIST_FIELDS = "id, title, abstract, authors, categories, pdf_path, created_at"


class PostgresRepository:
    def __init__(self, pool: AsyncConnectionPool):
        """Initializes the repository with an async connection pool."""
        self.pool = pool
        self.logger = logger

    async def _fetch_one(
        self, query: str, params: Any = None
    ) -> Optional[Dict[str, Any]]:
        async with self.pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return dict(row) if row else None

    async def _execute(self, query: str, params: Any = None) -> int:
        async with self.pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return cur.rowcount

    # --- Bot accounts --- #

    async def get_bot_by_api_key_hash(
        self, api_key_hash: str
    ) -> Optional[Dict[str, Any]]:
        query = f"""
            SELECT id, name, description, paper_count, created_at
            FROM {SCHEMA}.bot_accounts
            WHERE api_key_hash = %s;
        """
        try:
            return await self._fetch_one(query, (api_key_hash,))
        except Exception as e:
            self.logger.error(f"Error looking up bot by key hash: {e}")
            raise

    async def get_bot_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """Case-insensitive lookup by display name."""
        query = f"""
            SELECT id, name, description, paper_count, created_at
            FROM {SCHEMA}.bot_accounts
            WHERE lower(name) = lower(%s);
        """
        try:
            return await self._fetch_one(query, (name,))
        except Exception as e:
            self.logger.error(f"Error looking up bot by name '{name}': {e}")
            raise

    async def create_bot(
        self, name: str, api_key_hash: str, description: Optional[str] = None
    ) -> Dict[str, Any]:
        """Inserts a bot account. Raises psycopg.errors.UniqueViolation on duplicates."""
        query = f"""
            INSERT INTO {SCHEMA}.bot_accounts (name, api_key_hash, description)
            VALUES (%s, %s, %s)
            RETURNING id, name, description, paper_count, created_at;
        """
        row = await self._fetch_one(query, (name, api_key_hash, description))
        if row is None:
            raise RuntimeError("INSERT ... RETURNING produced no row for bot account")
        return row

    async def increment_bot_paper_count(self, bot_id: uuid.UUID) -> None:
        query = f"""
            UPDATE {SCHEMA}.bot_accounts
            SET paper_count = paper_count + 1
            WHERE id = %s;
        """
        await self._execute(query, (bot_id,))

    # --- Registration attempts --- #

    async def get_latest_registration_attempt(
        self, ip_address: str, since: datetime
    ) -> Optional[datetime]:
        query = f"""
            SELECT created_at
            FROM {SCHEMA}.registration_attempts
            WHERE ip_address = %s AND created_at > %s
            ORDER BY created_at DESC
            LIMIT 1;
        """
        row = await self._fetch_one(query, (ip_address, since))
        return row["created_at"] if row else None

    async def record_registration_attempt(self, ip_address: str) -> None:
        query = f"INSERT INTO {SCHEMA}.registration_attempts (ip_address) VALUES (%s);"
        await self._execute(query, (ip_address,))

    # --- Submissions --- #

    async def get_latest_published_submission_time(
        self, bot_id: uuid.UUID, since: datetime
    ) -> Optional[datetime]:
        query = f"""
            SELECT created_at
            FROM {SCHEMA}.submissions
            WHERE bot_id = %s AND status = %s AND created_at > %s
            ORDER BY created_at DESC
            LIMIT 1;
        """
        row = await self._fetch_one(
            query, (bot_id, SubmissionStatus.PUBLISHED.value, since)
        )
        return row["created_at"] if row else None

    async def create_submission(self, bot_id: uuid.UUID) -> Submission:
        query = f"""
            INSERT INTO {SCHEMA}.submissions (bot_id, status)
            VALUES (%s, %s)
            RETURNING id, paper_id, bot_id, status, error_message, created_at;
        """
        row = await self._fetch_one(query, (bot_id, SubmissionStatus.COMPILING.value))
        if row is None:
            raise RuntimeError("INSERT ... RETURNING produced no row for submission")
        return Submission.model_validate(row)

    async def mark_submission_failed(
        self, submission_id: uuid.UUID, error_message: str
    ) -> None:
        query = f"""
            UPDATE {SCHEMA}.submissions
            SET status = %s, error_message = %s
            WHERE id = %s AND status = %s;
        """
        await self._execute(
            query,
            (
                SubmissionStatus.FAILED.value,
                error_message,
                submission_id,
                SubmissionStatus.COMPILING.value,
            ),
        )

    async def mark_submission_published(
        self, submission_id: uuid.UUID, paper_id: str
    ) -> None:
        query = f"""
            UPDATE {SCHEMA}.submissions
            SET status = %s, paper_id = %s
            WHERE id = %s AND status = %s;
        """
        await self._execute(
            query,
            (
                SubmissionStatus.PUBLISHED.value,
                paper_id,
                submission_id,
                SubmissionStatus.COMPILING.value,
            ),
        )

    async def get_submission(
        self, submission_id: uuid.UUID
    ) -> Optional[Submission]:
        query = f"""
            SELECT id, paper_id, bot_id, status, error_message, created_at
            FROM {SCHEMA}.submissions WHERE id = %s;
        """
        row = await self._fetch_one(query, (submission_id,))
        return Submission.model_validate(row) if row else None

    # --- Paper ids --- #

    async def next_paper_sequence(self, month_prefix: str) -> int:
        """
        Atomically reserves the next sequence number for `month_prefix`.

        The first call of a month seeds the counter from the highest id already
        present in `papers` for that month.
        """
        query = f"""
            INSERT INTO {SCHEMA}.paper_id_sequences (month_prefix, last_value)
            SELECT %(prefix)s,
                   COALESCE(MAX(CAST(split_part(id, '.', 3) AS INTEGER)), 0) + 1
            FROM {SCHEMA}.papers
            WHERE id LIKE %(pattern)s
            ON CONFLICT (month_prefix) DO UPDATE
                SET last_value = {SCHEMA}.paper_id_sequences.last_value + 1
            RETURNING last_value;
        """
        params = {"prefix": month_prefix, "pattern": f"{month_prefix}.%"}
        row = await self._fetch_one(query, params)
        if row is None:
            raise RuntimeError(f"Sequence allocation returned no row for {month_prefix}")
        return int(row["last_value"])

    # --- Papers --- #

    async def insert_paper(
        self,
        paper_id: str,
        bot_id: uuid.UUID,
        title: str,
        abstract: Optional[str],
        authors: List[Dict[str, Any]],
        pdf_path: str,
        latex_source: Dict[str, Any],
        categories: List[str],
    ) -> Dict[str, Any]:
        query = f"""
            INSERT INTO {SCHEMA}.papers
                (id, bot_id, title, abstract, authors, pdf_path, latex_source, categories, status)
            VALUES
                (%(id)s, %(bot_id)s, %(title)s, %(abstract)s, %(authors)s,
                 %(pdf_path)s, %(latex_source)s, %(categories)s, 'published')
            RETURNING id, created_at;
        """
        params = {
            "id": paper_id,
            "bot_id": bot_id,
            "title": title,
            "abstract": abstract,
            "authors": Jsonb(authors),
            "pdf_path": pdf_path,
            "latex_source": Jsonb(latex_source),
            "categories": Jsonb(categories),
        }
        row = await self._fetch_one(query, params)
        if row is None:
            raise RuntimeError(f"INSERT ... RETURNING produced no row for {paper_id}")
        return row

    async def get_published_paper(self, paper_id: str) -> Optional[Dict[str, Any]]:
        """Full row for a published paper; None for unknown or unpublished ids."""
        query = f"""
            SELECT id, bot_id, title, abstract, authors, pdf_path, latex_source,
                   categories, status, created_at
            FROM {SCHEMA}.papers
            WHERE id = %s AND status = 'published';
        """
        try:
            return await self._fetch_one(query, (paper_id,))
        except Exception as e:
            self.logger.error(f"Error fetching paper {paper_id} from PG: {e}")
            raise

    async def query_papers(
        self,
        query: Optional[str] = None,
        title: Optional[str] = None,
        author: Optional[str] = None,
        abstract: Optional[str] = None,
        category: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        sort_order: str = "desc",
        offset: int = 0,
        limit: int = 25,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Filtered page of published papers plus the total match count.

        Count and page are two separate statements; the total may lag the page
        under concurrent writes.
        """
        where_clauses = ["status = 'published'"]
        params: Dict[str, Any] = {}

        if query:
            where_clauses.append(
                "(title ILIKE %(like_query)s OR abstract ILIKE %(like_query)s"
                " OR authors::text ILIKE %(like_query)s)"
            )
            params["like_query"] = f"%{query}%"
        if title:
            where_clauses.append("title ILIKE %(like_title)s")
            params["like_title"] = f"%{title}%"
        if author:
            where_clauses.append("authors::text ILIKE %(like_author)s")
            params["like_author"] = f"%{author}%"
        if abstract:
            where_clauses.append("abstract ILIKE %(like_abstract)s")
            params["like_abstract"] = f"%{abstract}%"
        if category:
            if "." in category:
                where_clauses.append("categories @> %(category_json)s::jsonb")
                params["category_json"] = json.dumps([category])
            else:
                where_clauses.append(
                    "EXISTS (SELECT 1 FROM jsonb_array_elements_text(categories) AS cat"
                    " WHERE cat LIKE %(category_group)s)"
                )
                params["category_group"] = f"{category}.%"
        if created_from:
            where_clauses.append("created_at >= %(created_from)s")
            params["created_from"] = created_from
        if created_before:
            where_clauses.append("created_at < %(created_before)s")
            params["created_before"] = created_before

        where_sql = " AND ".join(where_clauses)
        order_direction = "ASC" if sort_order == "asc" else "DESC"

        count_sql = f"SELECT COUNT(*) AS count FROM {SCHEMA}.papers WHERE {where_sql};"
        params["offset"] = offset
        params["limit"] = limit
        select_sql = f"""
            SELECT {PAPER_LIST_FIELDS}
            FROM {SCHEMA}.papers
            WHERE {where_sql}
            ORDER BY created_at {order_direction}, id {order_direction}
            OFFSET %(offset)s
            LIMIT %(limit)s;
        """

        total_count = 0
        results: List[Dict[str, Any]] = []
        try:
            async with self.pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(count_sql, params)
                    count_result = await cur.fetchone()
                    total_count = count_result["count"] if count_result else 0

                    if total_count > offset:
                        await cur.execute(select_sql, params)
                        results = [dict(row) for row in await cur.fetchall()]
            return results, total_count
        except Exception as e:
            self.logger.exception(f"Error querying papers with filters {params}: {e}")
            raise

    async def count_published_since(self, since: Optional[datetime] = None) -> int:
        if since is None:
            query = f"SELECT COUNT(*) AS count FROM {SCHEMA}.papers WHERE status = 'published';"
            row = await self._fetch_one(query)
        else:
            query = f"""
                SELECT COUNT(*) AS count FROM {SCHEMA}.papers
                WHERE status = 'published' AND created_at >= %s;
            """
            row = await self._fetch_one(query, (since,))
        return int(row["count"]) if row else 0
