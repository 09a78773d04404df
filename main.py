import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from config import settings
from routers import admins, cart, customers, orders, products, reviews, users, wishlist
from services.accounts_service import bootstrap_admin

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------------
# App Setup
# ----------------------------------------------------------------------------

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(wishlist.router, prefix="/api/wishlist", tags=["wishlist"])
app.include_router(customers.router, prefix="/api/customers", tags=["customers"])
app.include_router(admins.router, prefix="/api/admins", tags=["admins"])


# ----------------------------------------------------------------------------
# Error envelope: every failure is {"success": false, "message": ...}
# ----------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(status_code=400, content={"success": False, "message": "; ".join(problems) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"success": False, "message": "Internal server error"}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# ----------------------------------------------------------------------------
# Health and Test
# ----------------------------------------------------------------------------

@app.get("/")
def root():
    return {"success": True, "message": f"{settings.PROJECT_NAME} running"}


@app.get("/test")
def test_database():
    if database.db is None:
        return {"backend": "ok", "db": "not configured"}
    try:
        collections = database.db.list_collection_names()
        return {"backend": "ok", "db": "ok", "collections": collections}
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        return {"backend": "ok", "db": f"error: {e}"}


# ----------------------------------------------------------------------------
# Startup Hook
# ----------------------------------------------------------------------------

@app.on_event("startup")
def on_startup():
    if database.db is None:
        logger.warning("DATABASE_URL not set; running without a database")
        return
    try:
        database.ensure_indexes(database.db)
        if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
            bootstrap_admin(database.db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    except Exception:
        # The API still serves; requests will surface the database error
        logger.exception("Startup database initialisation failed")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
