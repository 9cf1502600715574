"""
Financial coach chat endpoints
"""

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from finsensei.database import get_db
from finsensei.models import ChatRole
from finsensei.schemas import ChatRequest, ChatMessageOut, AdviceOut
from finsensei.services.accounts import get_accounts
from finsensei.services.aggregation import compute_snapshot
from finsensei.services.chat_history import save_chat_message, get_chat_history, clear_chat_history
from finsensei.services.coach import FinancialCoach, CoachError
from finsensei.services.transactions import get_transactions
from finsensei.utils import get_logger, RateLimiter

logger = get_logger(__name__)

chat_router = APIRouter(tags=["coach"])

CHAT_ERROR = "Failed to process chat message"


def get_coach(request: Request) -> FinancialCoach:
    return request.app.state.coach


def get_chat_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.chat_rate_limiter


def _client_key(request: Request) -> str:
    client_ip = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip") \
        or (request.client.host if request.client else "unknown")
    user_agent = request.headers.get("user-agent", "unknown")
    return f"{client_ip}-{user_agent}"


def _rate_limited(limiter: RateLimiter, key: str) -> JSONResponse:
    retry_after = limiter.retry_after(key)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": "Rate limit exceeded. Please try again later.",
            "retryAfter": retry_after
        },
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(limiter.max_requests),
            "X-RateLimit-Remaining": str(limiter.remaining(key))
        }
    )


@chat_router.post("/api/chat")
async def chat(
    request: Request,
    coach: FinancialCoach = Depends(get_coach),
    limiter: RateLimiter = Depends(get_chat_rate_limiter),
    db: Session = Depends(get_db)
):
    """Answer one chat turn; any failure becomes a generic 500"""
    key = _client_key(request)
    if not limiter.is_allowed(key):
        logger.warning(f"Chat rate limit exceeded for {key}")
        return _rate_limited(limiter, key)

    try:
        payload = ChatRequest.model_validate(await request.json())
        history = [turn.model_dump(mode="json") for turn in payload.history]
        reply = await coach.chat(payload.message, payload.context.model_dump(), history)
    except Exception as e:
        logger.error(f"Chat request failed: {e}")
        return JSONResponse(status_code=500, content={"error": CHAT_ERROR})

    if payload.userId:
        await run_in_threadpool(save_chat_message, db, payload.userId, ChatRole.USER, payload.message)
        await run_in_threadpool(save_chat_message, db, payload.userId, ChatRole.ASSISTANT, reply)

    return {"response": reply}


@chat_router.get("/api/users/{user_id}/chat-history", response_model=List[ChatMessageOut])
def read_chat_history(user_id: str, limit: int = Query(default=50, ge=1, le=500), db: Session = Depends(get_db)):
    return get_chat_history(db, user_id, limit)


@chat_router.delete("/api/users/{user_id}/chat-history")
def delete_chat_history(user_id: str, db: Session = Depends(get_db)):
    if not clear_chat_history(db, user_id):
        return JSONResponse(status_code=500, content={"error": "Failed to clear chat history"})
    return {"status": "success"}


@chat_router.get("/api/users/{user_id}/advice", response_model=AdviceOut)
async def read_financial_advice(
    user_id: str,
    coach: FinancialCoach = Depends(get_coach),
    db: Session = Depends(get_db)
):
    """One-shot analysis of the user's stored accounts and transactions"""
    accounts = await run_in_threadpool(get_accounts, db, user_id)
    transactions = await run_in_threadpool(get_transactions, db, user_id)
    currency = accounts[0].currency if accounts else None
    snapshot = compute_snapshot(accounts, transactions, currency=currency)

    try:
        content = await coach.fetch_financial_advice(snapshot)
    except CoachError as e:
        logger.error(f"Error fetching financial advice: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch financial advice"})

    return {"content": content, "timestamp": datetime.now(timezone.utc)}
