# storefront/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_db
from storefront.domain.schemas import ProductOut
from storefront.repos.catalog_repo import CatalogRepo

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=List[ProductOut])
def list_products(
    seller: int | None = Query(None, description="Only products of this seller"),
    db: Session = Depends(get_db),
):
    return CatalogRepo(db).list_products(seller_id=seller)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = CatalogRepo(db).get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail={"error": "not_found", "message": "Product not found"})
    return product
