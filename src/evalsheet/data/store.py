from __future__ import annotations

import logging
import re
import sqlite3
from datetime import UTC, datetime
from typing import Any, Iterable, Optional

import pandas as pd

from evalsheet.config import settings
from evalsheet.data.storage import Database
from evalsheet.exceptions import ResponseNotFoundError, TemplateConflictError, TemplateNotFoundError
from evalsheet.models import EvaluationItem, ResponseSnapshot, SheetExtraction

logger = logging.getLogger(__name__)

_TEMPLATE_COLUMNS = "id, template_name, category, internal_category, upload_date"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _optional_int(value: Any) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def _records(df: pd.DataFrame) -> list[dict[str, Any]]:
    if df.empty:
        return []
    return df.astype(object).where(df.notna(), None).to_dict("records")


class ResponseStore:
    """
    Persistence for templates and their extracted responses.
    Every public method runs in its own transaction.
    """

    def __init__(self, db: Database):
        self.db = db
        self.display_prefix = settings.export.template_display_prefix
        self._display_re = re.compile(rf"^{re.escape(self.display_prefix)}(\d+)$")

    # -- templates -----------------------------------------------------------------

    @staticmethod
    def _template_row(cur: sqlite3.Cursor) -> Optional[dict[str, Any]]:
        row = cur.fetchone()
        if row is None:
            return None
        cols = [d[0] for d in cur.description]
        return dict(zip(cols, row))

    def _find_template(self, conn: sqlite3.Connection, column: str, value: Any) -> Optional[dict[str, Any]]:
        cur = conn.execute(f"SELECT {_TEMPLATE_COLUMNS} FROM templates WHERE {column} = ?", (value,))
        return self._template_row(cur)

    def get_template_by_category(self, category: str) -> dict[str, Any]:
        with self.db.transaction() as conn:
            template = self._find_template(conn, "category", category)
        if template is None:
            raise TemplateNotFoundError(f"Template category '{category}' not found")
        return template

    def _display_number(self, category: str) -> Optional[int]:
        m = self._display_re.match(category or "")
        return int(m.group(1)) if m else None

    def _next_display_name(self, conn: sqlite3.Connection) -> str:
        categories = [row[0] for row in conn.execute("SELECT category FROM templates")]
        numbers = [n for n in (self._display_number(c) for c in categories) if n is not None]
        return f"{self.display_prefix}{max(numbers, default=0) + 1}"

    def get_or_create_template(self, internal_category: str, original_file_name: str) -> tuple[dict[str, Any], bool]:
        """Returns (template, created_flag)."""
        with self.db.transaction() as conn:
            existing = self._find_template(conn, "internal_category", internal_category)
            if existing:
                return existing, False
            category = self._next_display_name(conn)
            cur = conn.execute(
                "INSERT INTO templates (template_name, category, internal_category, upload_date) VALUES (?, ?, ?, ?)",
                (original_file_name, category, internal_category, _now()),
            )
            template = self._find_template(conn, "id", cur.lastrowid)
        logger.info("Created template", extra={"category": category, "internal_category": internal_category})
        return template, True

    @staticmethod
    def _count_responses(conn: sqlite3.Connection, template_id: int) -> int:
        return conn.execute("SELECT COUNT(*) FROM responses WHERE template_id = ?", (template_id,)).fetchone()[0]

    def list_templates(self) -> list[dict[str, Any]]:
        query = """
            SELECT t.id, t.template_name, t.category, t.internal_category, t.upload_date,
                   COUNT(r.id) AS response_count,
                   COUNT(DISTINCT r.sheet_name) AS sheet_count
            FROM templates t
            LEFT JOIN responses r ON r.template_id = t.id
            GROUP BY t.id
            ORDER BY t.id
        """
        with self.db.transaction() as conn:
            df = pd.read_sql_query(query, conn)
        return _records(df)

    def _renumber(self, conn: sqlite3.Connection) -> int:
        """
        Auto-named templates without responses are dropped; the rest are
        renamed so their numbers run 1..n without gaps. Returns renamed count.
        """
        rows = conn.execute("SELECT id, category FROM templates").fetchall()
        numbered = []
        for template_id, category in rows:
            number = self._display_number(category)
            if number is None:
                continue
            if self._count_responses(conn, template_id) == 0:
                conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
                logger.info("Dropped empty template", extra={"template_id": template_id, "category": category})
                continue
            numbered.append((number, template_id, category))

        renamed = 0
        for position, (_, template_id, category) in enumerate(sorted(numbered), 1):
            expected = f"{self.display_prefix}{position}"
            if category != expected:
                conn.execute("UPDATE templates SET category = ? WHERE id = ?", (expected, template_id))
                renamed += 1
        return renamed

    def rename_template(self, template_id: int, new_category: str) -> dict[str, Any]:
        new_category = new_category.strip()
        with self.db.transaction() as conn:
            template = self._find_template(conn, "id", template_id)
            if template is None:
                raise TemplateNotFoundError(f"Template {template_id} not found")
            if template["category"] == new_category:
                return template

            conflict = self._find_template(conn, "category", new_category)
            if conflict is not None:
                if self._count_responses(conn, conflict["id"]) > 0:
                    raise TemplateConflictError(
                        f"Template category '{new_category}' is already used by template {conflict['id']}"
                    )
                conn.execute("DELETE FROM templates WHERE id = ?", (conflict["id"],))
                logger.info("Removed empty conflicting template", extra={"template_id": conflict["id"]})

            conn.execute("UPDATE templates SET category = ? WHERE id = ?", (new_category, template_id))
            self._renumber(conn)
            return self._find_template(conn, "id", template_id)

    # -- responses -----------------------------------------------------------------

    def replace_response(self, template_id: int, original_file_name: str, extraction: SheetExtraction) -> tuple[int, bool]:
        """
        Store one sheet atomically. An existing response for the same
        (template, file, sheet) keeps its id and has its rows replaced.
        Returns (response_id, reuploaded_flag).
        """
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT id FROM responses WHERE template_id = ? AND original_file_name = ? AND sheet_name = ?",
                (template_id, original_file_name, extraction.sheet_name),
            ).fetchone()
            if row:
                response_id, reuploaded = row[0], True
                conn.execute("DELETE FROM evaluation_data WHERE response_id = ?", (response_id,))
                conn.execute("DELETE FROM response_metadata WHERE response_id = ?", (response_id,))
                conn.execute(
                    "UPDATE responses SET last_updated = ?, is_reuploaded = 1 WHERE id = ?",
                    (_now(), response_id),
                )
            else:
                cur = conn.execute(
                    """
                    INSERT INTO responses (template_id, sheet_name, original_file_name, last_updated, is_reuploaded)
                    VALUES (?, ?, ?, ?, 0)
                    """,
                    (template_id, extraction.sheet_name, original_file_name, _now()),
                )
                response_id, reuploaded = cur.lastrowid, False

            conn.executemany(
                "INSERT INTO response_metadata (response_id, header_key, header_value) VALUES (?, ?, ?)",
                [(response_id, key, value) for key, value in extraction.metadata.items()],
            )
            conn.executemany(
                """
                INSERT INTO evaluation_data
                    (response_id, main_item, sub_item, sub_item_rank, evaluation, comment)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (response_id, i.main_item, i.sub_item, i.rank, i.evaluation, i.comment)
                    for i in extraction.items
                ],
            )
        return response_id, reuploaded

    def list_responses(self, template_id: int) -> list[dict[str, Any]]:
        query = """
            SELECT id AS response_id, original_file_name, sheet_name, last_updated, is_reuploaded
            FROM responses
            WHERE template_id = ?
            ORDER BY original_file_name, sheet_name
        """
        with self.db.transaction() as conn:
            df = pd.read_sql_query(query, conn, params=[template_id])
        rows = _records(df)
        for row in rows:
            row["is_reuploaded"] = bool(row["is_reuploaded"])
        return rows

    def get_response(self, response_id: int) -> dict[str, Any]:
        """One stored response with its metadata pairs and items, in stored order."""
        with self.db.transaction() as conn:
            df = pd.read_sql_query(
                """
                SELECT r.id AS response_id, t.category, r.original_file_name, r.sheet_name,
                       r.last_updated, r.is_reuploaded
                FROM responses r
                JOIN templates t ON t.id = r.template_id
                WHERE r.id = ?
                """,
                conn,
                params=[response_id],
            )
            if df.empty:
                raise ResponseNotFoundError(f"Response {response_id} not found")
            metadata = pd.read_sql_query(
                "SELECT header_key, header_value FROM response_metadata WHERE response_id = ? ORDER BY id",
                conn,
                params=[response_id],
            )
            items = pd.read_sql_query(
                "SELECT main_item, sub_item, evaluation, comment FROM evaluation_data WHERE response_id = ? ORDER BY id",
                conn,
                params=[response_id],
            )

        response = _records(df)[0]
        response["is_reuploaded"] = bool(response["is_reuploaded"])
        response["metadata"] = {
            row["header_key"]: row["header_value"] or "" for row in _records(metadata)
        }
        response["items"] = [
            {key: value or "" for key, value in row.items()} for row in _records(items)
        ]
        return response

    def sheet_names(self, template_id: int) -> list[str]:
        """Sheet names of a template, ordered by their first upload."""
        with self.db.transaction() as conn:
            rows = conn.execute(
                "SELECT sheet_name FROM responses WHERE template_id = ? GROUP BY sheet_name ORDER BY MIN(id)",
                (template_id,),
            ).fetchall()
        return [r[0] for r in rows]

    def metadata_keys(self, template_id: int, sheet_name: str) -> list[str]:
        query = """
            SELECT m.header_key
            FROM response_metadata m
            JOIN responses r ON r.id = m.response_id
            WHERE r.template_id = ? AND r.sheet_name = ?
              AND m.header_value IS NOT NULL AND m.header_value != ''
            GROUP BY m.header_key
            ORDER BY MIN(m.id)
        """
        with self.db.transaction() as conn:
            rows = conn.execute(query, (template_id, sheet_name)).fetchall()
        return [r[0] for r in rows]

    def load_snapshots(self, template_id: int, sheet_name: str, reuploads_last: bool = False) -> list[ResponseSnapshot]:
        """
        Responses of one sheet as export input. Upload order by default;
        reuploads_last puts re-uploaded responses after fresh ones.
        """
        order = "is_reuploaded ASC, id ASC" if reuploads_last else "id ASC"
        with self.db.transaction() as conn:
            responses = pd.read_sql_query(
                f"SELECT id, original_file_name FROM responses WHERE template_id = ? AND sheet_name = ? ORDER BY {order}",
                conn,
                params=[template_id, sheet_name],
            )
            if responses.empty:
                return []
            ids = responses["id"].tolist()
            marks = ",".join("?" * len(ids))
            metadata = pd.read_sql_query(
                f"SELECT response_id, header_key, header_value FROM response_metadata "
                f"WHERE response_id IN ({marks}) ORDER BY id",
                conn,
                params=ids,
            )
            items = pd.read_sql_query(
                f"SELECT response_id, main_item, sub_item, sub_item_rank, evaluation, comment FROM evaluation_data "
                f"WHERE response_id IN ({marks}) ORDER BY id",
                conn,
                params=ids,
            )

        meta_by_response: dict[int, dict[str, str]] = {}
        for row in metadata.itertuples(index=False):
            if row.header_value:
                meta_by_response.setdefault(row.response_id, {})[row.header_key] = row.header_value

        items_by_response: dict[int, list[EvaluationItem]] = {}
        for row in items.itertuples(index=False):
            items_by_response.setdefault(row.response_id, []).append(
                EvaluationItem(
                    main_item=row.main_item,
                    sub_item=row.sub_item or "",
                    evaluation=row.evaluation or "",
                    comment=row.comment or "",
                    rank=_optional_int(row.sub_item_rank),
                )
            )

        return [
            ResponseSnapshot(
                label=row.original_file_name,
                metadata=meta_by_response.get(row.id, {}),
                items=tuple(items_by_response.get(row.id, ())),
            )
            for row in responses.itertuples(index=False)
        ]

    def delete_responses(self, response_ids: Iterable[int]) -> dict[str, list]:
        """
        Delete responses, drop templates they leave empty and renumber auto names.
        Unknown ids are reported, not raised.
        """
        deleted: list[int] = []
        missing: list[int] = []
        touched: set[int] = set()
        with self.db.transaction() as conn:
            for response_id in dict.fromkeys(response_ids):
                row = conn.execute("SELECT template_id FROM responses WHERE id = ?", (response_id,)).fetchone()
                if row is None:
                    missing.append(response_id)
                    continue
                conn.execute("DELETE FROM evaluation_data WHERE response_id = ?", (response_id,))
                conn.execute("DELETE FROM response_metadata WHERE response_id = ?", (response_id,))
                conn.execute("DELETE FROM responses WHERE id = ?", (response_id,))
                deleted.append(response_id)
                touched.add(row[0])

            removed_templates = []
            for template_id in sorted(touched):
                if self._count_responses(conn, template_id) == 0:
                    conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
                    removed_templates.append(template_id)
            if deleted:
                self._renumber(conn)

        logger.info(
            "Deleted responses",
            extra={"deleted": len(deleted), "missing": len(missing), "removed_templates": removed_templates},
        )
        return {"deleted": deleted, "missing": missing, "removed_templates": removed_templates}

    def recent_files(self, page: int = 1, limit: int = 10) -> tuple[list[dict[str, Any]], int]:
        """Uploads grouped by (file, template category), newest first. Returns (page_rows, total)."""
        page = max(page, 1)
        limit = max(limit, 1)
        grouped = """
            SELECT r.original_file_name AS file_name, t.category AS category,
                   MAX(r.last_updated) AS last_updated, MAX(r.id) AS latest_response_id
            FROM responses r
            JOIN templates t ON t.id = r.template_id
            GROUP BY r.original_file_name, t.category
        """
        with self.db.transaction() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM ({grouped})").fetchone()[0]
            df = pd.read_sql_query(
                grouped + " ORDER BY last_updated DESC, latest_response_id DESC LIMIT ? OFFSET ?",
                conn,
                params=[limit, (page - 1) * limit],
            )
        return _records(df), int(total)
