"""
API Router
"""

from fastapi import APIRouter, Depends

from app.core.token import security_scheme
from app.relationship.api import router as relationship_router

api_router = APIRouter()

# All relationship routes need a bearer token
api_router.include_router(relationship_router, dependencies=[Depends(security_scheme)])
