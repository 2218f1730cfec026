from fastapi import APIRouter
from pgx.api.routes import interpretation

api_router = APIRouter()

api_router.include_router(interpretation.router, prefix="/interpretation", tags=["Interpretation"])
