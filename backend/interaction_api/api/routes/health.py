# interaction_api/api/routes/health.py
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root():
    return "Welcome to the Party Interaction API"


@router.get("/api/health")
async def health():
    return {"status": "OK", "message": "Party Interaction API is running"}
