from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

import config
from database import SessionLocal, init_db
from route_modules import combined_router
from service_modules.patch_merge import MemberWritePolicy
from service_modules.user_service import UserService

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("valhalla")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Rejects misconfigured member limits at startup
    MemberWritePolicy.from_config()
    init_db()
    UserService(SessionLocal).ensure_admin(config.ADMIN_USER, config.ADMIN_PASS)
    logger.info("Valhalla Gym API ready")
    yield


app = FastAPI(title="Valhalla Gym API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.include_router(combined_router)


@app.middleware("http")
async def add_no_cache_header(request: Request, call_next):
    response = await call_next(request)
    # Client data changes on every write; never serve it from a cache
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate, max-age=0, private"
    response.headers["Pragma"] = "no-cache"
    return response


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
async def read_root():
    return {"ok": True, "service": "Valhalla Gym API", "health": "/health"}


@app.get("/health")
async def health():
    return {"ok": True}


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5050))
    uvicorn.run(app, host="0.0.0.0", port=port)
