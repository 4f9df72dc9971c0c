from fastapi import APIRouter

from flexiday.api.changes import change_router
from flexiday.api.group_users import group_user_router
from flexiday.api.groups import group_router
from flexiday.api.quotas import quota_router
from flexiday.api.vacations import vacation_router

api_router = APIRouter()
api_router.include_router(vacation_router)
api_router.include_router(group_router)
api_router.include_router(group_user_router)
api_router.include_router(quota_router)
api_router.include_router(change_router)
