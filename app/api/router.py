from fastapi import APIRouter

from app.api.scrape.routes import router as scrape_router

router = APIRouter()
router.include_router(scrape_router)
