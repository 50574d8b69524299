# petalstore/services/product_service.py
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError

from petalstore.data.models.product import ProductModel
from petalstore.domain.errors import Forbidden, NotFound, PersistenceFailure
from petalstore.domain.schemas import Actor, Product, ProductIn, ProductUpdate, Role
from petalstore.repos.product_repo import ProductRepo
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


def _require_admin(actor: Actor | None, action: str):
    if actor is None or actor.role != Role.ADMIN:
        raise Forbidden(f"Only an administrator can {action}.")


class ProductService:
    """Flower catalog: browsing for everyone, editing for admins."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    #query
    def list_products(self) -> List[Product]:
        with self.session_factory() as db:
            return [Product.model_validate(p) for p in ProductRepo(db).list_products()]

    def by_category(self, category: str) -> List[Product]:
        with self.session_factory() as db:
            return [Product.model_validate(p) for p in ProductRepo(db).list_products(category=category)]

    def featured(self) -> List[Product]:
        with self.session_factory() as db:
            return [Product.model_validate(p) for p in ProductRepo(db).list_products(featured=True)]

    def search(self, query: str) -> List[Product]:
        with self.session_factory() as db:
            return [Product.model_validate(p) for p in ProductRepo(db).list_products(search=query.strip())]

    def get_product(self, product_id: str) -> Product:
        with self.session_factory() as db:
            product = ProductRepo(db).get_product(product_id)
            if not product:
                raise NotFound("Product not found.")
            return Product.model_validate(product)

    def get_many(self, product_ids: Iterable[str]) -> List[Product]:
        with self.session_factory() as db:
            return [Product.model_validate(p) for p in ProductRepo(db).get_products(product_ids)]

    #commands (admin)
    def create_product(self, actor: Actor | None, payload: ProductIn) -> Product:
        _require_admin(actor, "add products")
        with self.session_factory() as db:
            repo = ProductRepo(db)
            try:
                created = repo.create_product(ProductModel(**payload.model_dump()))
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error creating product: {e}")
                raise PersistenceFailure("Failed to create the product, please try again.") from e
            logger.info(f"Product {created.id} created")
            return Product.model_validate(created)

    def update_product(self, actor: Actor | None, product_id: str, payload: ProductUpdate) -> Product:
        _require_admin(actor, "edit products")
        with self.session_factory() as db:
            repo = ProductRepo(db)
            try:
                updated = repo.update_product(product_id, payload.model_dump(exclude_unset=True))
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error updating product {product_id}: {e}")
                raise PersistenceFailure("Failed to update the product, please try again.") from e
            if not updated:
                raise NotFound("Product not found.")
            return Product.model_validate(updated)

    def delete_product(self, actor: Actor | None, product_id: str) -> None:
        _require_admin(actor, "delete products")
        with self.session_factory() as db:
            repo = ProductRepo(db)
            try:
                deleted = repo.delete_product(product_id)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error deleting product {product_id}: {e}")
                raise PersistenceFailure("Failed to delete the product, please try again.") from e
            if not deleted:
                raise NotFound("Product not found.")
            logger.info(f"Product {product_id} deleted")
