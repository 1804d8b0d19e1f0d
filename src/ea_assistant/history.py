"""
ea_assistant/history.py — SQLite persistence for the front end
==============================================================
Everything the browser version kept in local storage lives here instead:
analysis history, user settings, the in-progress form draft and a log of
downloaded artifacts.  Values are stored as JSON TEXT blobs with no schema
versioning; a blob that no longer parses is treated as missing.

The database path comes from Settings (EA_HISTORY_DB, default
``ea_assistant_data.db`` in the working directory) and is read on every call,
so tests can point it at a temp file via the environment.

Public API
----------
  init_db()                          create tables if they don't exist
  save_history_entry(entry)          append; prune beyond EA_MAX_HISTORY
  load_history(limit=None)           → list[dict], newest first
  clear_history()
  save_settings(values) / load_settings()
  save_draft(form_id, values) / load_draft(form_id)
  log_download(run_id, artifact) / load_download_log(limit=50)
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Optional

from ea_assistant.config import get_settings
from ea_assistant.models import Artifact

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS history (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id        TEXT,
    entry_type    TEXT    DEFAULT 'technology-research',
    technology    TEXT,
    entry_json    TEXT    NOT NULL,
    created_at    TEXT    DEFAULT (datetime('now'))
);
CREATE TABLE IF NOT EXISTS settings (
    key           TEXT PRIMARY KEY,
    value_json    TEXT NOT NULL,
    updated_at    TEXT DEFAULT (datetime('now'))
);
CREATE TABLE IF NOT EXISTS drafts (
    form_id       TEXT PRIMARY KEY,
    value_json    TEXT NOT NULL,
    updated_at    TEXT DEFAULT (datetime('now'))
);
CREATE TABLE IF NOT EXISTS downloads (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id        TEXT,
    artifact_name TEXT NOT NULL,
    artifact_type TEXT,
    size_kb       REAL,
    created_at    TEXT DEFAULT (datetime('now'))
);
"""


def _get_conn() -> sqlite3.Connection:
    """Return a connection with row_factory set and the schema in place."""
    conn = sqlite3.connect(get_settings().app.history_db, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(_SCHEMA)
    return conn


def init_db() -> None:
    """Create tables if they don't exist."""
    _get_conn().close()


def _loads(blob: Optional[str]) -> Optional[dict]:
    if not blob:
        return None
    try:
        return json.loads(blob)
    except ValueError:
        logger.warning("Discarding unreadable JSON blob in history store")
        return None


# ─── History ─────────────────────────────────────────────────────────────────

def save_history_entry(entry: dict) -> int:
    """Append one history entry; rows beyond EA_MAX_HISTORY (oldest first) are pruned."""
    entry = dict(entry)
    entry.setdefault("timestamp", datetime.now().isoformat(timespec="seconds"))
    max_history = get_settings().app.max_history

    conn = _get_conn()
    cur = conn.execute(
        "INSERT INTO history (run_id, entry_type, technology, entry_json) VALUES (?, ?, ?, ?)",
        (
            entry.get("id"),
            entry.get("type", "technology-research"),
            entry.get("technology"),
            json.dumps(entry, default=str),
        ),
    )
    conn.execute(
        "DELETE FROM history WHERE id NOT IN "
        "(SELECT id FROM history ORDER BY id DESC LIMIT ?)",
        (max_history,),
    )
    conn.commit()
    row_id = cur.lastrowid
    conn.close()
    return row_id


def load_history(limit: Optional[int] = None) -> list[dict]:
    """Newest first, at most ``limit`` (default EA_MAX_HISTORY) entries."""
    limit = limit or get_settings().app.max_history
    conn = _get_conn()
    rows = conn.execute(
        "SELECT entry_json FROM history ORDER BY id DESC LIMIT ?", (limit,)
    ).fetchall()
    conn.close()
    return [e for e in (_loads(r["entry_json"]) for r in rows) if e is not None]


def clear_history() -> None:
    conn = _get_conn()
    conn.execute("DELETE FROM history")
    conn.commit()
    conn.close()


# ─── Settings ────────────────────────────────────────────────────────────────

def save_settings(values: dict) -> None:
    """Upsert each key; keys not mentioned keep their stored value."""
    conn = _get_conn()
    conn.executemany(
        "INSERT INTO settings (key, value_json, updated_at) VALUES (?, ?, datetime('now')) "
        "ON CONFLICT(key) DO UPDATE SET value_json = excluded.value_json, "
        "updated_at = excluded.updated_at",
        [(k, json.dumps(v, default=str)) for k, v in values.items()],
    )
    conn.commit()
    conn.close()


def load_settings(defaults: Optional[dict] = None) -> dict:
    result = dict(defaults or {})
    conn = _get_conn()
    rows = conn.execute("SELECT key, value_json FROM settings").fetchall()
    conn.close()
    for r in rows:
        try:
            result[r["key"]] = json.loads(r["value_json"])
        except ValueError:
            logger.warning("Ignoring unreadable setting %r", r["key"])
    return result


# ─── Form drafts ─────────────────────────────────────────────────────────────

def save_draft(form_id: str, values: dict) -> None:
    conn = _get_conn()
    conn.execute(
        "INSERT INTO drafts (form_id, value_json, updated_at) VALUES (?, ?, datetime('now')) "
        "ON CONFLICT(form_id) DO UPDATE SET value_json = excluded.value_json, "
        "updated_at = excluded.updated_at",
        (form_id, json.dumps(values, default=str)),
    )
    conn.commit()
    conn.close()


def load_draft(form_id: str) -> Optional[dict]:
    conn = _get_conn()
    row = conn.execute("SELECT value_json FROM drafts WHERE form_id = ?", (form_id,)).fetchone()
    conn.close()
    return _loads(row["value_json"]) if row else None


# ─── Download log ────────────────────────────────────────────────────────────

def log_download(run_id: Optional[str], artifact: Artifact) -> None:
    conn = _get_conn()
    conn.execute(
        "INSERT INTO downloads (run_id, artifact_name, artifact_type, size_kb) VALUES (?, ?, ?, ?)",
        (run_id, artifact.name, artifact.type.value, artifact.size_kb),
    )
    conn.commit()
    conn.close()


def load_download_log(limit: int = 50) -> list[dict]:
    conn = _get_conn()
    rows = conn.execute(
        "SELECT run_id, artifact_name, artifact_type, size_kb, created_at "
        "FROM downloads ORDER BY id DESC LIMIT ?",
        (limit,),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]
