from fastapi import APIRouter

from querypilot.api.routes import sql, utils

api_router = APIRouter()
api_router.include_router(sql.router)
api_router.include_router(utils.router)
