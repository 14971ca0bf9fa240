"""Root endpoint."""

from fastapi import APIRouter

router = APIRouter(tags=["root"])


@router.get("/")
def read_root() -> dict:
    """Service identity."""
    return {"message": "Hello from Portfolio API", "service": "portfolio-api", "version": "0.1.0"}
