from fastapi import APIRouter

from mail_archiver.routes.archive_router import router as archive_router
from mail_archiver.routes.labels_router import router as labels_router
from mail_archiver.routes.messages_router import router as messages_router

router = APIRouter()
router.include_router(labels_router)
router.include_router(messages_router)
router.include_router(archive_router)
