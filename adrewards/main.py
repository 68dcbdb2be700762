# adrewards/main.py
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from adrewards.core.config import get_settings
from adrewards.core.errors import AppError, ExternalCapabilityError
from adrewards.core.logging_config import configure_logging
from adrewards.database import Base, engine
# Imported for their table definitions
from adrewards.models import member, nft, passes, points, post, reward, weekly, x_post  # noqa: F401
from adrewards.routers import admin, assets, auth, members, nfts, posts, referrals, rewards, weekly as weekly_routes, x_posts
from adrewards.utils.responses import fail

load_dotenv()

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    # Create DB tables
    Base.metadata.create_all(bind=engine)
    logger.info("%s started (%s)", settings.APP_NAME, settings.ENV)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS with credentials (for cookie sessions)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=settings.ALLOW_CREDENTIALS,
    allow_methods=settings.ALLOW_METHODS,
    allow_headers=settings.ALLOW_HEADERS,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, ExternalCapabilityError):
        logger.warning("External capability failure on %s %s: %s", request.method, request.url.path, exc.message)
    elif exc.status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(status_code=400, content=fail(message))


@app.get("/")
def read_root():
    return {"message": "AdRewards backend running"}


# Routers
app.include_router(auth.router)
app.include_router(members.router)
app.include_router(posts.router)
app.include_router(x_posts.router)
app.include_router(rewards.router)
app.include_router(nfts.router)
app.include_router(assets.router)
app.include_router(referrals.router)
app.include_router(weekly_routes.router)
app.include_router(admin.router)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Log in through /api/auth/login and paste the returned token into the Authorize button.",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    }
    for path in openapi_schema["paths"].values():
        for method in path.values():
            method["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi
