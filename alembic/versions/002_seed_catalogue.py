"""seed development catalogue

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

Local development only. Production catalogues are loaded through POST /api/v1/books.
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

SEED_BOOKS = [
    {"title": "The Pragmatic Programmer", "author": "Andrew Hunt, David Thomas",
     "isbn": "9780135957059", "total_copies": 5},
    {"title": "Designing Data-Intensive Applications", "author": "Martin Kleppmann",
     "isbn": "9781449373320", "total_copies": 3},
    {"title": "Fluent Python", "author": "Luciano Ramalho",
     "isbn": "9781492056355", "total_copies": 4},
    {"title": "Clean Architecture", "author": "Robert C. Martin",
     "isbn": "9780134494166", "total_copies": 2},
    {"title": "Structure and Interpretation of Computer Programs",
     "author": "Harold Abelson, Gerald Jay Sussman", "isbn": "9780262510875", "total_copies": 1},
]


def upgrade() -> None:
    books = sa.table(
        "books",
        sa.column("title", sa.String()),
        sa.column("author", sa.String()),
        sa.column("isbn", sa.String()),
        sa.column("total_copies", sa.Integer()),
        sa.column("available_copies", sa.Integer()),
    )
    op.bulk_insert(books, [{"available_copies": row["total_copies"], **row} for row in SEED_BOOKS])


def downgrade() -> None:
    isbns = ", ".join(f"'{row['isbn']}'" for row in SEED_BOOKS)
    op.execute(f"DELETE FROM books WHERE isbn IN ({isbns})")
