from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlmodel import Session, SQLModel

from app.api.v1 import index
from app.api.v1 import roles
from app.api.v1 import administrator
from app.api.v1 import products
from app.api.v1 import notifications

from app.core.config import settings
from app.core.dependencies import get_dispatcher
from app.core.logging import setup_logging
from app.db.core import engine
from app.services.ownership import OwnershipGuard

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    SQLModel.metadata.create_all(engine)

    if settings.bootstrap_administrator:
        with Session(engine) as session:
            OwnershipGuard(session).bootstrap(settings.bootstrap_administrator)
    else:
        logger.warning("BOOTSTRAP_ADMINISTRATOR not set; privileged operations stay unavailable until seeded.")

    # Deliver anything committed but not delivered before the last shutdown
    get_dispatcher().dispatch()
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Middlewares
origins = []

if settings.allowed_hosts:
    origins = settings.allowed_hosts.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(index.router, prefix="/api/v1")
app.include_router(roles.router, prefix="/api/v1/roles", tags=["Roles"])
app.include_router(administrator.router,
                   prefix="/api/v1/administrator", tags=["Administrator"])
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(notifications.router,
                   prefix="/api/v1/notifications", tags=["Notifications"])

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=None,
    )
