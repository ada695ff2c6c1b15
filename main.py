import os
import sys
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from bookinstance_controller import router as bookinstance_router
from schemas import Book as BookSchema, BookInstance as BookInstanceSchema
from views import views

logger.remove()
logger.add(sys.stderr, level=os.getenv("LOG_LEVEL", "INFO"))

app = FastAPI(title="Local Library Catalog")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------
# Request logging
# ----------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    status_code = 500
    with logger.contextualize(request_id=request_id, method=request.method, path=request.url.path):
        logger.debug("request.start")
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers.setdefault("X-Request-ID", request_id)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

# ----------------------
# Error pages
# ----------------------

@app.exception_handler(StarletteHTTPException)
async def http_error_page(request: Request, exc: StarletteHTTPException):
    logger.bind(status_code=exc.status_code, path=request.url.path).warning(str(exc.detail))
    return views.render(request, "error", {
        "title": "Error",
        "message": exc.detail,
        "status": exc.status_code,
    }, status_code=exc.status_code)


@app.exception_handler(Exception)
async def server_error_page(request: Request, exc: Exception):
    logger.bind(path=request.url.path, error_type=type(exc).__name__).exception("request.error")
    return views.render(request, "error", {
        "title": "Error",
        "message": "Internal Server Error",
        "status": 500,
    }, status_code=500)

# ----------------------
# Health & Schema
# ----------------------

@app.get("/")
def read_root():
    return {"message": "Local Library catalog is running"}

@app.get("/test")
def test_database():
    db = database.db
    report = {
        "configured": db is not None,
        "database_name": db.name if db is not None else None,
        "status": "not configured",
        "collections": [],
    }
    if db is None:
        return report
    try:
        report["collections"] = sorted(db.list_collection_names())
        report["status"] = "ok"
    except PyMongoError as e:
        logger.warning("database check failed: {}", e)
        report["status"] = f"error: {type(e).__name__}"
    return report

@app.get("/schema")
def get_schema():
    # Return JSON schema-like description for viewer tools
    return {
        "book": BookSchema.model_json_schema(),
        "bookinstance": BookInstanceSchema.model_json_schema(),
    }

# ----------------------
# Catalog
# ----------------------

app.include_router(bookinstance_router, prefix="/catalog")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
