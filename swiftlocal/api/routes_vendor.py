from fastapi import APIRouter, Depends, File, UploadFile
from typing import List
from swiftlocal.api.deps import get_vendor_service, require_operation
from swiftlocal.core.session import MarketplaceSession
from swiftlocal.schemas import (
    ImageUploadRead, ProductActiveUpdate, ProductCreate, ProductRead, ProductUpdate, ProfileRead, StoreProfile,
)
from swiftlocal.services.vendor import VendorService

router = APIRouter()

@router.get('/v1/products', response_model=List[ProductRead])
def my_products(session: MarketplaceSession = Depends(require_operation("vendor.products.read")), svc: VendorService = Depends(get_vendor_service)):
    return svc.list_products(session)

@router.post('/v1/products', response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, session: MarketplaceSession = Depends(require_operation("vendor.products.write")),
                   svc: VendorService = Depends(get_vendor_service)):
    return svc.create_product(session, payload)

@router.patch('/v1/products/{product_id}', response_model=ProductRead)
def update_product(product_id: str, payload: ProductUpdate, session: MarketplaceSession = Depends(require_operation("vendor.products.write")),
                   svc: VendorService = Depends(get_vendor_service)):
    return svc.update_product(session, product_id, payload)

@router.post('/v1/products/{product_id}/active', response_model=ProductRead)
def toggle_product(product_id: str, payload: ProductActiveUpdate, session: MarketplaceSession = Depends(require_operation("vendor.products.write")),
                   svc: VendorService = Depends(get_vendor_service)):
    return svc.set_product_active(session, product_id, payload.is_active)

@router.delete('/v1/products/{product_id}', status_code=204)
def delete_product(product_id: str, session: MarketplaceSession = Depends(require_operation("vendor.products.write")),
                   svc: VendorService = Depends(get_vendor_service)):
    svc.delete_product(session, product_id)

@router.post('/v1/images', response_model=ImageUploadRead, status_code=201)
def upload_image(file: UploadFile = File(...), session: MarketplaceSession = Depends(require_operation("vendor.images.upload")),
                 svc: VendorService = Depends(get_vendor_service)):
    return svc.upload_product_image(session, file.filename or "", file.file.read(), file.content_type)

@router.get('/v1/store', response_model=ProfileRead)
def my_store(session: MarketplaceSession = Depends(require_operation("vendor.store.read")), svc: VendorService = Depends(get_vendor_service)):
    return svc.get_store_profile(session)

@router.put('/v1/store', response_model=ProfileRead)
def update_store(payload: StoreProfile, session: MarketplaceSession = Depends(require_operation("vendor.store.write")),
                 svc: VendorService = Depends(get_vendor_service)):
    return svc.update_store_profile(session, payload)
