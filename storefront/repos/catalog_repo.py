# storefront/repos/catalog_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class CatalogRepo:
    """
    Read side of the catalog. Reads always go to the store
    (populate_existing) so stock/price are never served from the identity map.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id, populate_existing=True)

    def list_products(self, seller_id: int | None = None) -> list[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.id)
        if seller_id is not None:
            stmt = stmt.where(ProductModel.seller_id == seller_id)
        return list(self.db.execute(stmt.execution_options(populate_existing=True)).scalars().all())
