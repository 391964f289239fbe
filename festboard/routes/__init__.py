"""
festboard/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from festboard.routes import results, leaderboard, finalize, stream
from festboard.routes import events, institutions, health

router = APIRouter()

# Results board core
router.include_router(results.router)
router.include_router(leaderboard.router)
router.include_router(finalize.router)
router.include_router(stream.router)

# Catalogue
router.include_router(events.router)
router.include_router(institutions.router)

router.include_router(health.router)
