from fastapi import APIRouter, Depends
from typing import List
from swiftlocal.api.deps import get_admin, require_operation
from swiftlocal.core.session import MarketplaceSession
from swiftlocal.schemas import OrderRead, PlatformStats, ProfileRead, VendorActiveUpdate, VendorApprovalUpdate
from swiftlocal.services.admin import PlatformAggregation

router = APIRouter()

@router.get('/v1/stats', response_model=PlatformStats)
def stats(session: MarketplaceSession = Depends(require_operation("admin.stats")), admin: PlatformAggregation = Depends(get_admin)):
    return admin.platform_stats(session)

@router.get('/v1/vendors', response_model=List[ProfileRead])
def vendors(session: MarketplaceSession = Depends(require_operation("admin.vendors")), admin: PlatformAggregation = Depends(get_admin)):
    return admin.vendor_roster(session)

@router.get('/v1/vendors/pending', response_model=List[ProfileRead])
def pending_vendors(session: MarketplaceSession = Depends(require_operation("admin.vendors")), admin: PlatformAggregation = Depends(get_admin)):
    return admin.pending_vendors(session)

@router.post('/v1/vendors/{user_id}/active', response_model=ProfileRead)
def set_vendor_active(user_id: str, payload: VendorActiveUpdate, session: MarketplaceSession = Depends(require_operation("admin.vendors.manage")),
                      admin: PlatformAggregation = Depends(get_admin)):
    return admin.set_vendor_active(session, user_id, payload.is_active)

@router.post('/v1/vendors/{user_id}/approval', response_model=ProfileRead)
def set_vendor_approval(user_id: str, payload: VendorApprovalUpdate, session: MarketplaceSession = Depends(require_operation("admin.vendors.manage")),
                        admin: PlatformAggregation = Depends(get_admin)):
    return admin.set_vendor_approval(session, user_id, payload.status)

@router.get('/v1/members', response_model=List[ProfileRead])
def members(role: str = 'user', session: MarketplaceSession = Depends(require_operation("admin.members")), admin: PlatformAggregation = Depends(get_admin)):
    return admin.members(session, role)

@router.get('/v1/orders', response_model=List[OrderRead])
def orders(status: str = 'all', session: MarketplaceSession = Depends(require_operation("admin.orders")), admin: PlatformAggregation = Depends(get_admin)):
    return admin.orders_filtered(session, status)
