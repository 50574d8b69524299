# petalstore/data/seed.py
from decimal import Decimal

from petalstore.data.database import SessionLocal
from petalstore.data.models import ProductModel
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)

CATALOG = [
    ("Red Rose Bouquet", "Twelve long-stemmed red roses.", "1299.00", "bouquets", 20, True),
    ("Sunflower Bundle", "Five sunflowers wrapped in kraft paper.", "749.00", "bouquets", 15, False),
    ("White Lily Arrangement", "Lilies and greenery in a ceramic vase.", "1599.00", "arrangements", 8, True),
    ("Tulip Box", "Ten mixed tulips in a keepsake box.", "999.00", "boxes", 12, False),
    ("Orchid Pot", "Potted white phalaenopsis orchid.", "1899.00", "plants", 6, False),
]


def seed():
    db = SessionLocal()
    try:
        #only seed an empty catalog
        if db.query(ProductModel).first():
            return
        for name, description, price, category, stock, featured in CATALOG:
            db.add(
                ProductModel(
                    name=name,
                    description=description,
                    price=Decimal(price),
                    category=category,
                    stock=stock,
                    featured=featured,
                )
            )
        db.commit()
        logger.info(f"Seeded {len(CATALOG)} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
