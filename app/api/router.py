from fastapi import APIRouter
from app.api import auth, forms

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(forms.router, prefix="/forms", tags=["Forms"])
