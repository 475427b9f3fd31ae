from fastapi import APIRouter
from .recursos import router as recursos_router
from .presupuestos import router as presupuestos_router
from .programaciones import router as programaciones_router

api_router = APIRouter()
api_router.include_router(recursos_router)
api_router.include_router(presupuestos_router)
api_router.include_router(programaciones_router)
