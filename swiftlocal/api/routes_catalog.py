from fastapi import APIRouter, Depends
from typing import List, Optional
from swiftlocal.api.deps import get_catalog
from swiftlocal.schemas import ProductRead
from swiftlocal.services.catalog import CatalogAccessor

router = APIRouter()

@router.get('/v1/products', response_model=List[ProductRead])
def list_products(category: Optional[str] = None, search: Optional[str] = None, catalog: CatalogAccessor = Depends(get_catalog)):
    return catalog.list_public_products(category=category, search=search)

@router.get('/v1/products/{product_id}', response_model=ProductRead)
def get_product(product_id: str, catalog: CatalogAccessor = Depends(get_catalog)):
    return catalog.get_product(product_id)
