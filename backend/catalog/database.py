from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from catalog.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ships with FK enforcement off; turn it on for every new connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: str, echo: bool = False, **kwargs):
    """Create an engine with the connection options each backend needs."""
    # SQLite needs different config than MySQL/PostgreSQL
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)  # Needed for SQLite
        new_engine = create_engine(database_url, echo=echo, connect_args=connect_args, **kwargs)
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
        return new_engine

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        **kwargs
    )


engine = make_engine(settings.database_url, echo=settings.sql_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Statements that switch FK enforcement for the current connection only
_FK_TOGGLE_STATEMENTS = {
    "mysql": ("SET foreign_key_checks = 0", "SET foreign_key_checks = 1"),
    "mariadb": ("SET foreign_key_checks = 0", "SET foreign_key_checks = 1"),
    "postgresql": (
        "SET session_replication_role = replica",
        "SET session_replication_role = DEFAULT",
    ),
}


@contextmanager
def foreign_key_checks_disabled(db: Session):
    """
    Disable foreign key enforcement on the connection bound to ``db``.

    The statements run through the session so they land on the same pooled
    connection as the statements inside the block. Enforcement is always
    restored on exit, including when the block raises, so the connection is
    never handed back to the pool with checks switched off.

    SQLite only honours the foreign_keys pragma outside a transaction, so it
    has no entry here and the block runs with enforcement unchanged.
    """
    dialect = db.get_bind().dialect.name
    statements = _FK_TOGGLE_STATEMENTS.get(dialect)
    if statements is None:
        logger.debug(f"No foreign key toggle for dialect {dialect}, leaving checks on")
        yield
        return

    disable, enable = statements
    db.execute(text(disable))
    try:
        yield
    finally:
        db.execute(text(enable))


def init_db(bind=None):
    """Initialize database tables and seed default data."""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    # Seed default brands and categories if none exist
    from catalog.models import Brand, Category
    db = Session(bind=bind)
    try:
        if db.query(Brand).count() == 0:
            print("Seeding default brands...")
            default_brands = [
                Brand(id=1, name="Nike", website="https://www.nike.com"),
                Brand(id=2, name="Adidas", website="https://www.adidas.com"),
                Brand(id=3, name="Puma", website="https://www.puma.com"),
                Brand(id=4, name="Levi's", website="https://www.levi.com"),
                Brand(id=5, name="Zara", website="https://www.zara.com"),
                Brand(id=6, name="H&M", website="https://www.hm.com"),
            ]
            for brand in default_brands:
                db.add(brand)
            db.commit()
            print(f"Seeded {len(default_brands)} brands")

        if db.query(Category).count() == 0:
            print("Seeding default categories...")
            default_categories = [
                # Parent categories
                Category(id=1, name="Clothing"),
                Category(id=2, name="Footwear"),
                Category(id=3, name="Accessories"),

                # Subcategories
                Category(id=4, name="Shirts", parent_id=1),
                Category(id=5, name="Jeans", parent_id=1),
                Category(id=6, name="Dresses", parent_id=1),
                Category(id=7, name="Sneakers", parent_id=2),
                Category(id=8, name="Sandals", parent_id=2),
                Category(id=9, name="Watches", parent_id=3),
                Category(id=10, name="Bags", parent_id=3),
            ]
            for cat in default_categories:
                db.add(cat)
            db.commit()
            print(f"Seeded {len(default_categories)} categories")
    finally:
        db.close()
