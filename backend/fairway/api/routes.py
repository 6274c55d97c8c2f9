from fastapi import APIRouter

from fairway.api.admin import router as admin_router
from fairway.api.auth import router as auth_router
from fairway.api.channels import router as channels_router
from fairway.api.config import router as config_router
from fairway.api.direct import router as direct_router
from fairway.api.messages import router as messages_router
from fairway.api.presence import router as presence_router
from fairway.api.push import router as push_router
from fairway.api.uploads import router as uploads_router
from fairway.api.users import router as users_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(config_router)
router.include_router(channels_router)
router.include_router(messages_router)
router.include_router(direct_router)
router.include_router(uploads_router)
router.include_router(presence_router)
router.include_router(users_router)
router.include_router(push_router)
router.include_router(admin_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Fairway Chat API"}
