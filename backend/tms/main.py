import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tms.core.config import settings
from tms.core.database import engine
from tms.core.errors import TMSError
from tms.core.logging_setup import setup_logging
from tms.core.session import redis_client
from tms.models import Base
from tms.routers import account, tasks

logger = logging.getLogger(__name__)

app = FastAPI(title="TMS API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(account.router)
app.include_router(tasks.router)

@app.exception_handler(TMSError)
async def tms_error_handler(request: Request, exc: TMSError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=exc.headers,
    )

@app.on_event("startup")
async def startup():
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("TMS API started")

@app.on_event("shutdown")
async def shutdown():
    await redis_client.aclose()
    await engine.dispose()

@app.get("/")
async def root():
    return {"message": "TMS API is running"}
