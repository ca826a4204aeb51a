from contextlib import asynccontextmanager

from fastapi import FastAPI
from tripsplit.core.config import settings
from tripsplit.core.exceptions import AppException, app_exception_handler
from tripsplit.core.logging import configure_logging
from tripsplit.db.mongo import connect_to_mongo, disconnect_from_mongo
from tripsplit.api.v1.api import api_router

configure_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    yield
    await disconnect_from_mongo()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

app.add_exception_handler(AppException, app_exception_handler)

@app.get("/")
async def root():
    return {"message": "Welcome to Tripsplit API"}

app.include_router(api_router, prefix=settings.API_V1_STR)
