import logging
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from strawberry.fastapi import GraphQLRouter
from auction_house.database import init_db
from auction_house.config import get_settings
from auction_house.graphql.schema import schema, get_context
from auction_house.api.auth import router as auth_router
from auction_house.api.auctions import router as auctions_router
from auction_house.api.bidding import router as bidding_router
from auction_house.api.images import router as images_router
from auction_house.services.exceptions import ServiceError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    await init_db()
    logger.info("Database initialized")

    Path(settings.upload_dir, "auctions").mkdir(parents=True, exist_ok=True)

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title="Auction House API",
    description="Online auction marketplace: listings, bidding, watchlists and images",
    version="1.0.0",
    lifespan=lifespan,
)

# In production, set CORS_ORIGINS env var to your frontend URL
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.error_code, "message": exc.message},
    )


# REST API routers
app.include_router(auth_router)
app.include_router(auctions_router)
app.include_router(bidding_router)
app.include_router(images_router)

# GraphQL endpoint with auth context
graphql_app = GraphQLRouter(schema, context_getter=get_context)
app.include_router(graphql_app, prefix="/graphql")

# Uploaded auction images
app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/")
async def root():
    return {
        "message": "Auction House API",
        "version": "1.0.0",
        "docs": "/docs",
        "graphql": "/graphql",
        "endpoints": {
            "auth": "/api/auth",
            "auctions": "/api/auctions",
            "bidding": "/api/bidding",
            "images": "/api/images",
        }
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
