from fastapi import APIRouter

from app.api.v1.endpoints import questions, users

api_router = APIRouter()

api_router.include_router(questions.router)
api_router.include_router(users.router)
