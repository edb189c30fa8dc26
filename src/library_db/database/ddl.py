"""
Dialect-specific DDL: the borrow guard trigger and the current-borrows view.

Neither object can be expressed with declarative models, so both are attached
to the schema's metadata events. They are created and dropped together with
the tables by ``Base.metadata.create_all`` / ``drop_all``:

- ``prevent_borrow_if_no_copies`` is created right after ``borrow_records``.
  It runs BEFORE INSERT, FOR EACH ROW, and aborts the statement when the
  referenced book has no copies left. It only validates; it never touches
  ``books.available_copies``.
- ``current_borrows`` is created after every table exists and dropped before
  any table is dropped.
"""

from sqlalchemy import DDL, Column, Date, MetaData, String, Table, event

from .schema import Base, BorrowRecord

BORROW_REJECTED_MESSAGE = "Cannot borrow book: No copies available"

TRIGGER_NAME = "prevent_borrow_if_no_copies"
VIEW_NAME = "current_borrows"


# === Borrow guard trigger ===

# A missing book yields NULL here, so the row reaches the foreign key check
# and is rejected there instead.
SQLITE_BORROW_GUARD = DDL(
    f"""
    CREATE TRIGGER {TRIGGER_NAME}
    BEFORE INSERT ON borrow_records
    FOR EACH ROW
    WHEN (SELECT available_copies FROM books WHERE id = NEW.book_id) <= 0
    BEGIN
        SELECT RAISE(ABORT, '{BORROW_REJECTED_MESSAGE}');
    END
    """
)

MYSQL_BORROW_GUARD = DDL(
    f"""
    CREATE TRIGGER {TRIGGER_NAME}
    BEFORE INSERT ON borrow_records
    FOR EACH ROW
    BEGIN
        DECLARE copies INT;
        SELECT available_copies INTO copies
        FROM books
        WHERE id = NEW.book_id;
        IF copies <= 0 THEN
            SIGNAL SQLSTATE '45000'
            SET MESSAGE_TEXT = '{BORROW_REJECTED_MESSAGE}';
        END IF;
    END
    """
)

POSTGRESQL_BORROW_GUARD_FUNCTION = DDL(
    f"""
    CREATE OR REPLACE FUNCTION {TRIGGER_NAME}() RETURNS trigger AS $$
    DECLARE
        copies INTEGER;
    BEGIN
        SELECT available_copies INTO copies
        FROM books
        WHERE id = NEW.book_id
        FOR UPDATE;
        IF copies <= 0 THEN
            RAISE EXCEPTION '{BORROW_REJECTED_MESSAGE}';
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """
)

POSTGRESQL_BORROW_GUARD = DDL(
    f"""
    CREATE TRIGGER {TRIGGER_NAME}
    BEFORE INSERT ON borrow_records
    FOR EACH ROW
    EXECUTE FUNCTION {TRIGGER_NAME}()
    """
)

POSTGRESQL_DROP_BORROW_GUARD_FUNCTION = DDL(f"DROP FUNCTION IF EXISTS {TRIGGER_NAME}()")

borrow_records_table = BorrowRecord.__table__

event.listen(borrow_records_table, "after_create", SQLITE_BORROW_GUARD.execute_if(dialect="sqlite"))
event.listen(borrow_records_table, "after_create", MYSQL_BORROW_GUARD.execute_if(dialect="mysql"))
event.listen(
    borrow_records_table,
    "after_create",
    POSTGRESQL_BORROW_GUARD_FUNCTION.execute_if(dialect="postgresql"),
)
event.listen(
    borrow_records_table,
    "after_create",
    POSTGRESQL_BORROW_GUARD.execute_if(dialect="postgresql"),
)
# Dropping the table drops the trigger; the PL/pgSQL function outlives it.
event.listen(
    borrow_records_table,
    "after_drop",
    POSTGRESQL_DROP_BORROW_GUARD_FUNCTION.execute_if(dialect="postgresql"),
)


# === Current borrows view ===

CREATE_CURRENT_BORROWS_VIEW = DDL(
    f"""
    CREATE VIEW {VIEW_NAME} AS
    SELECT m.first_name AS first_name,
           m.last_name AS last_name,
           b.title AS title,
           br.borrow_date AS borrow_date,
           br.due_date AS due_date
    FROM members m
    JOIN borrow_records br ON m.id = br.member_id
    JOIN books b ON br.book_id = b.id
    WHERE br.return_date IS NULL
    """
)

DROP_CURRENT_BORROWS_VIEW = DDL(f"DROP VIEW IF EXISTS {VIEW_NAME}")

# create_all() on an existing database still fires after_create, so the
# view is replaced rather than created twice.
event.listen(Base.metadata, "after_create", DROP_CURRENT_BORROWS_VIEW)
event.listen(Base.metadata, "after_create", CREATE_CURRENT_BORROWS_VIEW)
event.listen(Base.metadata, "before_drop", DROP_CURRENT_BORROWS_VIEW)

# The view is read through a Core table bound to its own metadata, so that
# create_all() on the schema never mistakes it for a table to create.
view_metadata = MetaData()

current_borrows_view = Table(
    VIEW_NAME,
    view_metadata,
    Column("first_name", String(50)),
    Column("last_name", String(50)),
    Column("title", String(100)),
    Column("borrow_date", Date),
    Column("due_date", Date),
)
