"""
Shared fixtures: an in-memory SQLite database seeded with two organisations.
"""

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool


THERAPISTS = [
    # id, owner, organisation, visibility, published_at, created_at
    ("t1", "u-t1", "org-x", "PUBLIC", "2024-02-01T09:00:00+00:00", "2024-01-01"),
    ("t2", "u-t2", "org-x", "PRIVATE", "2024-02-01T09:00:00+00:00", "2024-01-02"),
    ("t3", "u-t3", "org-x", "ORGANISATION_ONLY", "2024-02-01T09:00:00+00:00", "2024-01-03"),
    ("t4", "u-t4", "org-x", "PUBLIC", None, "2024-01-04"),
    ("t5", "u-t5", "org-x", "PRIVATE", None, "2024-01-05"),
    ("t6", "u-t6", "org-y", "PUBLIC", "2024-02-01T09:00:00+00:00", "2024-01-06"),
    ("t7", "u-t7", "org-y", "ORGANISATION_ONLY", "2024-02-01T09:00:00+00:00", "2024-01-07"),
]

MEMBERS = [
    ("u-admin-x", "org-x", "ADMINISTRATOR"),
    ("u-member-x", "org-x", "MEMBER"),
    ("u-admin-y", "org-y", "ADMINISTRATOR"),
    ("u-member-y", "org-y", "MEMBER"),
]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text("""
            CREATE TABLE organisation_member (
                user_id TEXT NOT NULL,
                organisation_id TEXT NOT NULL,
                member_type TEXT NOT NULL,
                PRIMARY KEY (user_id, organisation_id)
            )
        """))
        conn.execute(text("""
            CREATE TABLE therapist (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                organisation_id TEXT,
                visibility TEXT,
                published_at TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        """))
        conn.execute(
            text(
                "INSERT INTO therapist (id, user_id, organisation_id, visibility, published_at, created_at)"
                " VALUES (:id, :u, :o, :v, :p, :c)"
            ),
            [dict(zip(("id", "u", "o", "v", "p", "c"), row)) for row in THERAPISTS],
        )
        conn.execute(
            text("INSERT INTO organisation_member VALUES (:u, :o, :m)"),
            [dict(zip(("u", "o", "m"), row)) for row in MEMBERS],
        )
    yield engine
    engine.dispose()
