# petalstore/services/wishlist_service.py
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from petalstore.domain.errors import NotFound, PersistenceFailure
from petalstore.domain.schemas import Product
from petalstore.repos.profile_repo import ProfileRepo
from petalstore.services.product_service import ProductService
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


class WishlistService:
    """
    Set of product ids kept on the shopper's profile row.

    add/remove read the list, change it and write it back in one
    transaction with the profile row locked.
    """

    def __init__(self, session_factory, products: ProductService):
        self.session_factory = session_factory
        self.products = products

    def ids(self, user_id: str) -> List[str]:
        with self.session_factory() as db:
            profile = ProfileRepo(db).get_profile(user_id)
            if profile is None:
                raise NotFound("Profile not found.")
            return list(profile.wishlist or [])

    def contains(self, user_id: str, product_id: str) -> bool:
        return product_id in self.ids(user_id)

    def add(self, user_id: str, product_id: str) -> bool:
        """False when the product was already there (nothing written)."""
        return self._modify(user_id, product_id, add=True)

    def remove(self, user_id: str, product_id: str) -> bool:
        """False when the product was not there (nothing written)."""
        return self._modify(user_id, product_id, add=False)

    def list(self, user_id: str) -> List[Product]:
        ids = self.ids(user_id)
        if not ids:
            return []
        return self.products.get_many(ids)

    def _modify(self, user_id: str, product_id: str, add: bool) -> bool:
        with self.session_factory() as db:
            repo = ProfileRepo(db)
            try:
                profile = repo.get_profile(user_id, for_update=True)
                if profile is None:
                    raise NotFound("Profile not found.")

                current = list(profile.wishlist or [])
                if add == (product_id in current):
                    repo.rollback()
                    return False

                if add:
                    updated = current + [product_id]
                else:
                    updated = [pid for pid in current if pid != product_id]
                repo.save_wishlist(profile, updated)
            except SQLAlchemyError as e:
                repo.rollback()
                action = "add to" if add else "remove from"
                logger.error(f"Error updating wishlist of {user_id}: {e}")
                raise PersistenceFailure(f"Failed to {action} your wishlist, please try again.") from e

            logger.info(f"Wishlist of {user_id}: {'added' if add else 'removed'} {product_id}")
            return True
