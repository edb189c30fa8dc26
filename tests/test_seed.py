"""Tests for sample and demo data loading."""

from datetime import date

from sqlalchemy import func, select

from library_db.database import Book, BorrowRecord, DatabaseManager, Member
from library_db.seed import generate_demo_data, generate_isbn13, load_sample_data


def count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestSampleData:
    def test_row_counts(self, session, sample_data):
        assert (sample_data.books, sample_data.members, sample_data.borrow_records) == (4, 4, 4)
        assert count(session, Book) == 4
        assert count(session, Member) == 4
        assert count(session, BorrowRecord) == 4

    def test_copies_untouched_by_ledger_rows(self, session, sample_data):
        copies = session.execute(select(Book.available_copies).order_by(Book.id)).scalars().all()
        assert copies == [3, 2, 1, 4]

    def test_single_returned_loan(self, session, sample_data):
        returned = session.execute(
            select(BorrowRecord).where(BorrowRecord.return_date.is_not(None))
        ).scalar_one()
        assert (returned.book_id, returned.member_id) == (2, 2)
        assert returned.return_date == date(2025, 3, 12)


class TestDemoData:
    def test_counts_match_summary(self, session):
        summary = generate_demo_data(
            session, books=10, members=5, loans=30, seed=7, today=date(2025, 6, 1)
        )

        assert count(session, Book) == summary.books == 10
        assert count(session, Member) == summary.members == 5
        assert count(session, BorrowRecord) == summary.borrow_records
        assert summary.borrow_records + summary.rejected == 30

        closed = session.execute(
            select(func.count())
            .select_from(BorrowRecord)
            .where(BorrowRecord.return_date.is_not(None))
        ).scalar_one()
        assert closed == summary.returned

    def test_dates_are_consistent(self, session):
        generate_demo_data(session, books=5, members=3, loans=20, seed=3, today=date(2025, 6, 1))

        for record in session.execute(select(BorrowRecord)).scalars():
            assert record.borrow_date <= date(2025, 6, 1)
            assert record.due_date >= record.borrow_date
            if record.return_date is not None:
                assert record.borrow_date <= record.return_date <= date(2025, 6, 1)

    def test_copies_never_negative(self, session):
        generate_demo_data(session, books=3, members=5, loans=40, seed=11, today=date(2025, 6, 1))

        lowest = session.execute(select(func.min(Book.available_copies))).scalar_one()
        assert lowest >= 0

    def test_reproducible(self):
        def titles_for(seed: int) -> list[str]:
            manager = DatabaseManager("sqlite:///:memory:")
            manager.init_database()
            try:
                with manager.session_scope() as session:
                    generate_demo_data(
                        session, books=5, members=2, loans=5, seed=seed, today=date(2025, 6, 1)
                    )
                    return session.execute(select(Book.title).order_by(Book.id)).scalars().all()
            finally:
                manager.close()

        assert titles_for(42) == titles_for(42)
        assert titles_for(42) != titles_for(43)

    def test_empty_catalog(self, session):
        summary = generate_demo_data(session, books=0, members=0, loans=10)
        assert summary.borrow_records == 0


def test_generated_isbn_is_valid():
    import random  # noqa: PLC0415 - Test-specific import

    isbn = generate_isbn13(random.Random(1))

    assert len(isbn) == 13
    assert isbn.startswith("978")
    total = sum(int(d) * (3 if i % 2 else 1) for i, d in enumerate(isbn))
    assert total % 10 == 0


def test_sample_data_loads_into_fresh_database():
    manager = DatabaseManager("sqlite:///:memory:")
    manager.init_database()
    try:
        with manager.session_scope() as session:
            summary = load_sample_data(session)
        assert summary.borrow_records == 4
    finally:
        manager.close()
