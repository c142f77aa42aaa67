from contextlib import asynccontextmanager

from fastapi import FastAPI

from mail_archiver.config import CFG
from mail_archiver.routes import router
from mail_archiver.utils.logger import logger
from mail_archiver.utils.utils import get_version


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up, archive root: {CFG.archive_root}")

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="Mail Archiver",
    version=get_version(),
    lifespan=lifespan,
)


app.include_router(router, prefix="/v1")
