"""SQLite storage for summary history and usage statistics."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from . import __version__
from .errors import StorageError
from .models import Conversation, SummaryResult


class HistoryStore:
    """SQLite-backed sink for summarized conversations."""

    def __init__(self, db_path: Path, max_history: int = 50):
        self.max_history = max_history
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(db_path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self._migrate()
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open history database {db_path}: {exc}") from exc

    def _migrate(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                platform TEXT NOT NULL,
                url TEXT,
                provider TEXT NOT NULL,
                summary TEXT NOT NULL,
                message_count INTEGER NOT NULL,
                conversation_json TEXT NOT NULL,
                saved_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS usage_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                action TEXT NOT NULL,
                platform TEXT,
                provider TEXT,
                created_at TEXT NOT NULL
            );
        """)
        self.conn.commit()

    def save_result(self, conversation: Conversation, summary: SummaryResult) -> int:
        """Store a summarized conversation, keeping only the newest ``max_history``."""
        cur = self.conn.execute(
            """INSERT INTO history (platform, url, provider, summary, message_count,
               conversation_json, saved_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                conversation.platform.value,
                conversation.url,
                summary.provider,
                summary.text,
                conversation.total_messages,
                conversation.model_dump_json(by_alias=True),
                _now(),
            ),
        )
        self.conn.execute(
            """DELETE FROM history WHERE id NOT IN (
                   SELECT id FROM history ORDER BY id DESC LIMIT ?
               )""",
            (self.max_history,),
        )
        self.conn.commit()
        self.record_usage("summarize", platform=conversation.platform.value, provider=summary.provider)
        return cur.lastrowid

    def record_usage(self, action: str, platform: str | None = None, provider: str | None = None):
        self.conn.execute(
            "INSERT INTO usage_events (action, platform, provider, created_at) VALUES (?, ?, ?, ?)",
            (action, platform, provider, _now()),
        )
        self.conn.commit()

    def list_history(self, limit: int = 10) -> list[dict]:
        rows = self.conn.execute(
            """SELECT id, platform, url, provider, message_count, saved_at
               FROM history ORDER BY id DESC LIMIT ?""",
            (limit,),
        ).fetchall()
        return [dict(r) for r in rows]

    def get_entry(self, entry_id: int) -> dict | None:
        row = self.conn.execute("SELECT * FROM history WHERE id = ?", (entry_id,)).fetchone()
        if not row:
            return None

        entry = dict(row)
        entry["conversation"] = Conversation.model_validate_json(entry.pop("conversation_json"))
        return entry

    def delete_entry(self, entry_id: int) -> bool:
        cur = self.conn.execute("DELETE FROM history WHERE id = ?", (entry_id,))
        self.conn.commit()
        return cur.rowcount > 0

    def clear(self):
        self.conn.execute("DELETE FROM history")
        self.conn.execute("DELETE FROM usage_events")
        self.conn.commit()

    def get_stats(self) -> dict:
        """Usage counters per action, provider and platform."""
        totals = dict(
            self.conn.execute(
                "SELECT action, COUNT(*) FROM usage_events GROUP BY action"
            ).fetchall()
        )
        providers = self.conn.execute(
            """SELECT provider, COUNT(*) FROM usage_events
               WHERE action = 'summarize' AND provider IS NOT NULL
               GROUP BY provider ORDER BY COUNT(*) DESC"""
        ).fetchall()
        platforms = self.conn.execute(
            """SELECT platform, COUNT(*) FROM usage_events
               WHERE platform IS NOT NULL
               GROUP BY platform ORDER BY COUNT(*) DESC"""
        ).fetchall()
        last_used = self.conn.execute("SELECT MAX(created_at) FROM usage_events").fetchone()[0]
        saved = self.conn.execute("SELECT COUNT(*) FROM history").fetchone()[0]

        return {
            "total_transfers": totals.get("transfer", 0),
            "total_summarizations": totals.get("summarize", 0),
            "provider_usage": {r[0]: r[1] for r in providers},
            "platform_usage": {r[0]: r[1] for r in platforms},
            "saved_summaries": saved,
            "last_used": last_used,
        }

    def export_data(self) -> dict[str, Any]:
        rows = self.conn.execute("SELECT * FROM history ORDER BY id DESC").fetchall()
        return {
            "version": __version__,
            "exported_at": _now(),
            "history": [dict(r) for r in rows],
            "stats": self.get_stats(),
        }

    def close(self):
        self.conn.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
