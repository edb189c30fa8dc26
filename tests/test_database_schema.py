"""
Tests for database schema and session management.

These tests verify:
1. Tables, the trigger and the view are created
2. Constraints and cascades are enforced by the database
3. The borrow guard trigger rejects inserts for unavailable books
4. Session management commits and rolls back properly
"""

from datetime import date

import pytest
from sqlalchemy import inspect, select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from library_db.database import (
    BORROW_REJECTED_MESSAGE,
    TRIGGER_NAME,
    VIEW_NAME,
    Book,
    BorrowRecord,
    ConstraintViolationError,
    Member,
    session_scope,
)
from library_db.database.session import EXPECTED_TABLES, safe_query


def insert_borrow_sql(session, book_id, member_id, return_date=None):
    """Insert a borrow record with plain SQL, bypassing the ORM."""
    session.execute(
        text(
            "INSERT INTO borrow_records (book_id, member_id, borrow_date, return_date, due_date) "
            "VALUES (:book_id, :member_id, '2025-05-01', :return_date, '2025-05-15')"
        ),
        {"book_id": book_id, "member_id": member_id, "return_date": return_date},
    )


class TestDatabaseSchema:
    """Test schema creation and basic operations."""

    def test_tables_created(self, db_manager):
        assert db_manager.table_names() == set(EXPECTED_TABLES)

    def test_view_created(self, db_manager):
        assert VIEW_NAME in db_manager.view_names()

    def test_trigger_created(self, session):
        rows = session.execute(
            text("SELECT name, tbl_name FROM sqlite_master WHERE type = 'trigger'")
        ).all()
        assert (TRIGGER_NAME, "borrow_records") in [tuple(row) for row in rows]

    def test_columns_and_nullability(self, db_manager):
        inspector = inspect(db_manager.engine)

        books = {c["name"]: c for c in inspector.get_columns("books")}
        assert set(books) == {
            "id",
            "title",
            "author",
            "genre",
            "publication_year",
            "isbn",
            "available_copies",
        }
        assert books["title"]["nullable"] is False
        assert books["genre"]["nullable"] is True

        members = {c["name"]: c for c in inspector.get_columns("members")}
        assert members["join_date"]["nullable"] is False
        assert members["email"]["nullable"] is True

        borrows = {c["name"]: c for c in inspector.get_columns("borrow_records")}
        assert borrows["return_date"]["nullable"] is True
        assert borrows["due_date"]["nullable"] is False

    def test_indexes_created(self, db_manager):
        inspector = inspect(db_manager.engine)
        assert {"idx_book_title", "idx_book_genre"} <= {
            i["name"] for i in inspector.get_indexes("books")
        }

    def test_defaults(self, session):
        session.add(Book(title="Dune", author="Frank Herbert"))
        session.add(Member(first_name="Paul", last_name="Atreides"))
        session.commit()

        book = session.execute(select(Book)).scalar_one()
        member = session.execute(select(Member)).scalar_one()
        assert book.available_copies == 1
        assert member.join_date == date.today()

    def test_server_side_defaults(self, session):
        session.execute(text("INSERT INTO books (title, author) VALUES ('Emma', 'Jane Austen')"))
        session.execute(text("INSERT INTO members (first_name, last_name) VALUES ('A', 'B')"))
        session.commit()

        copies = session.execute(text("SELECT available_copies FROM books")).scalar_one()
        join_date = session.execute(text("SELECT join_date FROM members")).scalar_one()
        assert copies == 1
        assert join_date is not None


class TestConstraints:
    """Constraints enforced by the database itself."""

    def test_isbn_unique(self, session):
        session.add(Book(title="A", author="X", isbn="9780000000001"))
        session.commit()

        session.add(Book(title="B", author="Y", isbn="9780000000001"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_null_isbn_not_unique(self, session):
        session.add_all([Book(title="A", author="X"), Book(title="B", author="Y")])
        session.commit()

        assert len(session.execute(select(Book)).scalars().all()) == 2

    def test_email_unique(self, session):
        session.add(Member(first_name="A", last_name="One", email="same@example.com"))
        session.commit()

        session.add(Member(first_name="B", last_name="Two", email="same@example.com"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_negative_copies_rejected(self, session):
        session.add(Book(title="A", author="X", available_copies=-1))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_overlong_isbn_rejected(self, session):
        with pytest.raises(IntegrityError):
            session.execute(
                text("INSERT INTO books (title, author, isbn) VALUES ('A', 'X', :isbn)"),
                {"isbn": "978-0-261-10334"},
            )
        session.rollback()

        session.execute(
            text("INSERT INTO books (title, author, isbn) VALUES ('A', 'X', :isbn)"),
            {"isbn": "9780261103344"},
        )
        session.commit()

    def test_unknown_member_rejected(self, session, sample_data):
        with pytest.raises(IntegrityError):
            insert_borrow_sql(session, book_id=1, member_id=999)
        session.rollback()

    def test_unknown_book_rejected_by_foreign_key(self, session, sample_data):
        with pytest.raises(IntegrityError) as exc_info:
            insert_borrow_sql(session, book_id=999, member_id=1)
        session.rollback()
        assert BORROW_REJECTED_MESSAGE not in str(exc_info.value)


class TestCascades:
    """ON DELETE CASCADE from books and members to borrow_records."""

    def test_deleting_book_removes_its_borrow_records(self, session, sample_data):
        book = session.get(Book, 1)
        session.delete(book)
        session.commit()

        remaining = session.execute(
            select(BorrowRecord.book_id).order_by(BorrowRecord.id)
        ).scalars().all()
        assert remaining == [2, 3]

    def test_deleting_member_removes_its_borrow_records(self, session, sample_data):
        session.execute(text("DELETE FROM members WHERE id = 2"))
        session.commit()

        count = session.execute(text("SELECT COUNT(*) FROM borrow_records")).scalar_one()
        assert count == 3


class TestBorrowGuardTrigger:
    """The trigger validates every insert into borrow_records."""

    def test_insert_allowed_when_copies_available(self, session, sample_data):
        insert_borrow_sql(session, book_id=4, member_id=1)
        session.commit()

        count = session.execute(text("SELECT COUNT(*) FROM borrow_records")).scalar_one()
        assert count == 5

    def test_insert_rejected_when_no_copies(self, session, sample_data):
        session.execute(text("UPDATE books SET available_copies = 0 WHERE id = 3"))
        session.commit()

        with pytest.raises(DBAPIError, match=BORROW_REJECTED_MESSAGE):
            insert_borrow_sql(session, book_id=3, member_id=4)
        session.rollback()

        count = session.execute(text("SELECT COUNT(*) FROM borrow_records")).scalar_one()
        assert count == 4

    def test_trigger_applies_to_closed_loans_too(self, session, sample_data):
        session.execute(text("UPDATE books SET available_copies = 0 WHERE id = 3"))
        session.commit()

        with pytest.raises(DBAPIError, match=BORROW_REJECTED_MESSAGE):
            insert_borrow_sql(session, book_id=3, member_id=4, return_date="2025-05-03")
        session.rollback()

    def test_trigger_does_not_decrement(self, session, sample_data):
        insert_borrow_sql(session, book_id=4, member_id=1)
        session.commit()

        copies = session.execute(text("SELECT available_copies FROM books WHERE id = 4"))
        assert copies.scalar_one() == 4

    def test_orm_insert_rejected(self, session, sample_data):
        session.execute(text("UPDATE books SET available_copies = 0 WHERE id = 2"))
        session.commit()

        session.add(
            BorrowRecord(
                book_id=2,
                member_id=1,
                borrow_date=date(2025, 5, 1),
                due_date=date(2025, 5, 15),
            )
        )
        with pytest.raises(DBAPIError, match=BORROW_REJECTED_MESSAGE):
            session.commit()
        session.rollback()


class TestCurrentBorrowsView:
    def test_view_lists_open_loans_only(self, session, sample_data):
        rows = session.execute(
            text(f"SELECT first_name, last_name, title FROM {VIEW_NAME} ORDER BY due_date")
        ).all()

        assert [tuple(row) for row in rows] == [
            ("John", "Doe", "To Kill a Mockingbird"),
            ("Alice", "Johnson", "The Great Gatsby"),
            ("Bob", "Williams", "To Kill a Mockingbird"),
        ]

    def test_view_reflects_returns(self, session, sample_data):
        session.execute(text("UPDATE borrow_records SET return_date = '2025-03-14' WHERE id = 1"))
        session.commit()

        count = session.execute(text(f"SELECT COUNT(*) FROM {VIEW_NAME}")).scalar_one()
        assert count == 2


class TestSessionManagement:
    def test_session_scope_commits(self, db_manager):
        with session_scope() as session:
            session.add(Book(title="Kept", author="Someone"))

        with session_scope() as session:
            assert session.execute(select(Book.title)).scalars().all() == ["Kept"]

    def test_session_scope_rolls_back_on_error(self, db_manager):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(Book(title="Lost", author="Someone"))
                session.flush()
                raise RuntimeError("boom")

        with session_scope() as session:
            assert session.execute(select(Book)).scalars().all() == []

    def test_verify_connection(self, db_manager):
        assert db_manager.verify_connection() is True

    def test_init_database_is_repeatable(self, db_manager):
        db_manager.init_database()

        assert db_manager.table_names() == set(EXPECTED_TABLES)
        assert VIEW_NAME in db_manager.view_names()

    def test_drop_existing_recreates_empty_schema(self, db_manager, session, sample_data):
        session.close()

        db_manager.init_database(drop_existing=True)

        with db_manager.session_scope() as fresh:
            assert fresh.execute(text("SELECT COUNT(*) FROM books")).scalar_one() == 0
        assert VIEW_NAME in db_manager.view_names()

    def test_drop_database(self, db_manager):
        db_manager.drop_database()

        assert db_manager.table_names() == set()
        assert db_manager.view_names() == set()

    def test_safe_query_translates_constraint_failures(self, session, sample_data):
        with pytest.raises(ConstraintViolationError):
            safe_query(
                session,
                lambda s: s.execute(text("UPDATE books SET available_copies = -1 WHERE id = 1")),
                "Failed to update copies",
            )
        session.rollback()

    def test_safe_query_passes_engine_errors_through(self, session, sample_data):
        session.execute(text(f"DROP VIEW {VIEW_NAME}"))

        with pytest.raises(OperationalError):
            safe_query(
                session,
                lambda s: s.execute(text(f"SELECT * FROM {VIEW_NAME}")).all(),
                "Failed to list current borrows",
            )
        session.rollback()
