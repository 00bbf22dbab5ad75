from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.logging_config import get_logger, setup_logging
from db.database import create_db_and_tables
from routers.batches import router as batches_router
from routers.carbonation import router as carbonation_router
from routers.inventory import router as inventory_router
from routers.packaging import router as packaging_router
from routers.purchase_orders import router as purchase_orders_router
from routers.sales_channels import router as sales_channels_router
from routers.ttb import router as ttb_router
from routers.users import router as users_router
from routers.vendors import router as vendors_router
from routers.vessels import router as vessels_router
from schemas.users import UserRead, UserCreate, UserUpdate

log = get_logger(component="app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.uses_default_jwt_secret:
        log.warning("JWT_SECRET is not set; tokens are signed with the default development secret")
    await create_db_and_tables()
    log.info("Cidery API started")
    yield
    log.info("Cidery API stopped")


app = FastAPI(
    title="Cidery Production API",
    description="API for tracking cider production from fermentation to TTB reporting",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
# directory/role routes must match before fastapi-users' /users/{id}
app.include_router(users_router, prefix="/users", tags=["users"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Cellar
app.include_router(vendors_router, prefix="/vendors", tags=["vendors"])
app.include_router(vessels_router, prefix="/vessels", tags=["vessels"])
app.include_router(batches_router, prefix="/batches", tags=["batches"])
app.include_router(carbonation_router, prefix="/carbonation", tags=["carbonation"])

# Packaging and finished goods
app.include_router(packaging_router, prefix="/packaging", tags=["packaging"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(sales_channels_router, prefix="/sales-channels", tags=["sales-channels"])

# Purchasing and compliance
app.include_router(purchase_orders_router, prefix="/purchase-orders", tags=["purchase-orders"])
app.include_router(ttb_router, prefix="/ttb", tags=["ttb"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
