import os

# Point the app at SQLite before catalog.database builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalog.database import Base, get_db, init_db, make_engine
from catalog.main import app
from catalog.models import Comment, Product, ProductCategory, Review


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test, seeded with brands and categories."""
    test_engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = Session(bind=engine)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_product(db):
    """Insert a product (and its category links) directly, bypassing the actions."""
    def _make_product(name="Product", price="100.00", categories=(), **fields):
        product = Product(name=name, price=Decimal(price), **fields)
        db.add(product)
        db.flush()
        for category_id in categories:
            db.add(ProductCategory(product_id=product.id, category_id=category_id))
        db.commit()
        return product
    return _make_product


@pytest.fixture
def catalog(make_product, db):
    """A small catalog covering every filter dimension."""
    products = {
        "runner": make_product(
            "Air Zoom Runner", "129.99", categories=[2, 7],
            gender="men", occasion="sports,casual", brands="1", discount=7
        ),
        "jeans": make_product(
            "Classic Slim Jeans", "79.50", categories=[1, 5],
            gender="women", occasion="casual", brands="4", discount=5
        ),
        "dress": make_product(
            "Linen Summer Dress", "59.00", categories=[1, 6],
            gender="women", occasion="beach,party", brands="5", discount=9
        ),
        "shirt": make_product(
            "Oxford Office Shirt", "45.00", categories=[1, 4],
            gender="men", occasion="office,formal", brands="6,5", discount=0
        ),
        "sneakers": make_product(
            "Kids Velcro Sneakers", "35.00", categories=[2, 7],
            gender="boy", occasion="casual,sports", brands="2,3", discount=12
        ),
        "watch": make_product(
            "Chronograph Steel Watch", "1499.00", categories=[3, 9],
            gender="men", occasion="formal,wedding", brands="14", discount=12
        ),
    }
    db.add_all([
        Review(product_id=products["runner"].id, user_id=1, rating=5, review_text="Great"),
        Review(product_id=products["runner"].id, user_id=2, rating=3, review_text="Ok"),
        Comment(product_id=products["runner"].id, user_id=1, comment="True to size?"),
        Review(product_id=products["jeans"].id, user_id=3, rating=4, review_text="Nice fit"),
    ])
    db.commit()
    return {key: product.id for key, product in products.items()}


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
