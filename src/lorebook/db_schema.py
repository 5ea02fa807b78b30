"""Database schema definitions for lorebook.

Contains the canonical SQL schema and the current schema version constant.
One table per document collection.
"""

from __future__ import annotations

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS workspaces (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS playbooks (
    id             TEXT PRIMARY KEY,
    workspace_id   TEXT NOT NULL REFERENCES workspaces(id),
    title          TEXT NOT NULL,
    description    TEXT DEFAULT '',
    tool_url       TEXT,
    category_id    TEXT,
    visibility     TEXT NOT NULL DEFAULT 'private',
    share_code     TEXT NOT NULL UNIQUE,
    origin_id      TEXT,
    sync_baseline  INTEGER NOT NULL DEFAULT 0,
    is_archived    BOOLEAN NOT NULL DEFAULT 0,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    CHECK (visibility IN ('public', 'private'))
);

CREATE INDEX IF NOT EXISTS idx_playbooks_workspace ON playbooks(workspace_id, is_archived);
CREATE INDEX IF NOT EXISTS idx_playbooks_origin ON playbooks(origin_id);

-- origin_id and source_item_id are lookup-only back-references: no FK, so
-- deleting an origin never cascades into or blocks its clones.
CREATE TABLE IF NOT EXISTS playbook_items (
    id              TEXT PRIMARY KEY,
    playbook_id     TEXT NOT NULL REFERENCES playbooks(id),
    title           TEXT NOT NULL,
    url             TEXT NOT NULL,
    description     TEXT DEFAULT '',
    "order"         INTEGER NOT NULL,
    source_item_id  TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_items_playbook_order ON playbook_items(playbook_id, "order");
CREATE INDEX IF NOT EXISTS idx_items_url ON playbook_items(url);
CREATE INDEX IF NOT EXISTS idx_items_source ON playbook_items(source_item_id);

CREATE TABLE IF NOT EXISTS notes (
    id            TEXT PRIMARY KEY,
    workspace_id  TEXT NOT NULL REFERENCES workspaces(id),
    title         TEXT NOT NULL,
    content       TEXT DEFAULT '',
    visibility    TEXT NOT NULL DEFAULT 'private',
    share_code    TEXT UNIQUE,
    is_archived   BOOLEAN NOT NULL DEFAULT 0,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL,
    CHECK (visibility IN ('public', 'private'))
);

CREATE INDEX IF NOT EXISTS idx_notes_workspace ON notes(workspace_id, is_archived);

CREATE TABLE IF NOT EXISTS playbook_progress (
    user_id      TEXT NOT NULL,
    item_id      TEXT NOT NULL,
    playbook_id  TEXT NOT NULL,
    completed    BOOLEAN NOT NULL DEFAULT 0,
    rating       INTEGER,
    notes        TEXT DEFAULT '',
    updated_at   TEXT NOT NULL,
    PRIMARY KEY (user_id, item_id),
    CHECK (rating IS NULL OR rating BETWEEN 0 AND 5)
);

CREATE INDEX IF NOT EXISTS idx_progress_user_playbook ON playbook_progress(user_id, playbook_id);

CREATE TABLE IF NOT EXISTS playbook_events (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    playbook_id  TEXT NOT NULL,
    event_type   TEXT NOT NULL,
    actor        TEXT DEFAULT '',
    old_value    TEXT,
    new_value    TEXT,
    created_at   TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_playbook_time ON playbook_events(playbook_id, created_at DESC);
"""

CURRENT_SCHEMA_VERSION = 1
