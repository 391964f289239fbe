"""
Institutions Router

The competing houses are seeded once; this router only lists them.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.database import get_db
from festboard.errors import MethodNotAllowedError
from festboard.services import catalog_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/institutions", tags=["institutions"])


@router.get("")
async def list_institutions(db: AsyncSession = Depends(get_db)):
    institutions = await catalog_service.list_institutions(db)
    return [institution.to_dict() for institution in institutions]


@router.post("")
async def create_institution():
    raise MethodNotAllowedError("Houses are fixed; new institutions cannot be created")
