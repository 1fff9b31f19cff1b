"""
Seed Catalog Script

Creates the default brands and categories, then a set of sample products
with their category links, so the listing and filter panel have data.
Run with: python -m scripts.seed_catalog
"""
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.orm import sessionmaker
from catalog.database import engine, init_db
from catalog.models import Product
from catalog.schemas import ProductCreate
from catalog.services.product_actions import save_products

# brands: comma-delimited brand ids, occasion: comma-delimited occasion names
PRODUCTS = [
    {"name": "Air Zoom Runner", "price": "129.99", "old_price": "139.99", "discount": 7,
     "gender": "men", "occasion": "sports,casual", "brands": "1", "categories": [2, 7]},
    {"name": "Classic Slim Jeans", "price": "79.50", "old_price": "84.00", "discount": 5,
     "gender": "women", "occasion": "casual", "brands": "4", "categories": [1, 5]},
    {"name": "Linen Summer Dress", "price": "59.00", "old_price": "65.00", "discount": 9,
     "gender": "women", "occasion": "beach,party", "brands": "5", "categories": [1, 6]},
    {"name": "Oxford Office Shirt", "price": "45.00", "old_price": "45.00", "discount": 0,
     "gender": "men", "occasion": "office,formal", "brands": "6,5", "categories": [1, 4]},
    {"name": "Kids Velcro Sneakers", "price": "35.00", "old_price": "40.00", "discount": 12,
     "gender": "boy", "occasion": "casual,sports", "brands": "2,3", "categories": [2, 7]},
    {"name": "Glitter Party Sandals", "price": "29.99", "old_price": "33.00", "discount": 9,
     "gender": "girl", "occasion": "party", "brands": "3", "categories": [2, 8]},
    {"name": "Chronograph Steel Watch", "price": "1499.00", "old_price": "1699.00", "discount": 12,
     "gender": "men", "occasion": "formal,wedding", "brands": "1", "categories": [3, 9]},
    {"name": "Leather Tote Bag", "price": "189.00", "old_price": "199.00", "discount": 5,
     "gender": "women", "occasion": "office,casual", "brands": "5", "categories": [3, 10]},
]


async def seed_products():
    """Seed sample products, skipping any that already exist by name."""
    print("Seeding products...")

    Session = sessionmaker(bind=engine)
    db = Session()

    try:
        created = 0
        skipped = 0

        for item in PRODUCTS:
            data = dict(item)
            category_ids = data.pop("categories")

            existing = db.query(Product).filter(Product.name == data["name"]).first()
            if existing:
                skipped += 1
                print(f"  Skipped: {data['name']} (already exists)")
                continue

            data["price"] = Decimal(data["price"])
            data["old_price"] = Decimal(data["old_price"])
            product = await save_products(db, ProductCreate(**data), category_ids)
            created += 1
            print(f"  Created: {product.name} ({len(category_ids)} categories)")

        print(f"\nDone! Created {created}, Skipped {skipped} products")
        print(f"  Total products: {db.query(Product).count()}")

    except Exception as e:
        print(f"Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    asyncio.run(seed_products())
