import logging
from typing import Optional
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from swiftlocal.version import VERSION
from swiftlocal.api import routes_admin, routes_cart, routes_catalog, routes_orders, routes_vendor
from swiftlocal.api.deps import get_session
from swiftlocal.core.config import settings
from swiftlocal.core.errors import MarketplaceError
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.schemas import DashboardRead, MeRead, ProfileRead
from swiftlocal.services.dashboards import dashboard_for

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("swiftlocal")

# Create instrumentator first
instrumentator = Instrumentator()

app = FastAPI(title="SwiftLocal Marketplace", version=VERSION)

# Instrument the app BEFORE adding routes
instrumentator.instrument(app).expose(app, include_in_schema=False, endpoint="/metrics", should_gzip=True)

@app.exception_handler(MarketplaceError)
async def marketplace_error(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail, exc_info=exc.__cause__)
    else:
        logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"title": exc.title, "detail": exc.detail})

@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/v1/_info")
def info():
    return {"service": "swiftlocal", "version": VERSION}

@app.get("/v1/me", response_model=MeRead)
def me(session: Optional[MarketplaceSession] = Depends(get_session)):
    """Who the caller is and which dashboard they land on."""
    session = require_session(session)
    dashboard = dashboard_for(session)
    return MeRead(
        user_id=session.user_id,
        role=session.role.value,
        profile=ProfileRead.model_validate(session.profile) if session.profile is not None else None,
        dashboard=DashboardRead(
            role=dashboard.role.value,
            view=dashboard.view,
            operations=sorted(dashboard.operations),
            read_only=dashboard.read_only,
            notice=dashboard.notice,
        ),
    )

@app.on_event("startup")
async def startup_event():
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            logger.debug("%s %s", sorted(route.methods), route.path)

app.include_router(routes_catalog.router, prefix='/catalog', tags=['catalog'])
app.include_router(routes_cart.router, prefix='/cart', tags=['cart'])
app.include_router(routes_orders.router, prefix='/order', tags=['orders'])
app.include_router(routes_vendor.router, prefix='/vendor', tags=['vendor'])
app.include_router(routes_admin.router, prefix='/admin', tags=['admin'])
