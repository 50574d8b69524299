# petalstore/repos/product_repo.py
from typing import Iterable, List

from sqlalchemy import case, or_, select, update
from sqlalchemy.orm import Session

from petalstore.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: str) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids: Iterable[str]) -> List[ProductModel]:
        ids = list(product_ids)
        if not ids:
            return []
        stmt = select(ProductModel).where(ProductModel.id.in_(ids)).order_by(ProductModel.name)
        return list(self.db.execute(stmt).scalars().all())

    def list_products(
        self,
        category: str | None = None,
        featured: bool | None = None,
        search: str | None = None,
    ) -> List[ProductModel]:
        stmt = select(ProductModel)
        if category is not None:
            stmt = stmt.where(ProductModel.category == category)
        if featured is not None:
            stmt = stmt.where(ProductModel.featured.is_(featured))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    ProductModel.name.ilike(pattern),
                    ProductModel.description.ilike(pattern),
                    ProductModel.category.ilike(pattern),
                )
            )
        return list(self.db.execute(stmt.order_by(ProductModel.name)).scalars().all())

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def update_product(self, product_id: str, data: dict) -> ProductModel | None:
        product = self.get_product(product_id)
        if product:
            for key, value in data.items():
                setattr(product, key, value)
            self.db.commit()
            self.db.refresh(product)
        return product

    def delete_product(self, product_id: str) -> bool:
        product = self.get_product(product_id)
        if not product:
            return False
        self.db.delete(product)
        self.db.commit()
        return True

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        """Atomic decrement floored at zero. Returns affected rows (0 = no such product)."""
        stmt = (
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                stock=case(
                    (ProductModel.stock >= quantity, ProductModel.stock - quantity),
                    else_=0,
                )
            )
            .execution_options(synchronize_session="fetch")
        )
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount

    def rollback(self):
        self.db.rollback()
