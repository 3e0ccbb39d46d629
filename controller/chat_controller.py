# controller/chat_controller.py
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from controller.controller_dependencies import get_summary_service
from controller.summary_controller import SSE_HEADERS
from model.api import ChatStreamRequest
from service.summary_service import SummaryService
from util.constants import InternalURIs

chat_router = APIRouter(
    dependencies=[
        Depends(
            RateLimiter(
                times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
            )
        )
    ]
)


@chat_router.post(InternalURIs.CHAT_STREAM)
async def chat_stream(
    payload: ChatStreamRequest,
    service: SummaryService = Depends(get_summary_service),
):
    generator = service.chat_stream(payload.messages)
    return StreamingResponse(generator, media_type="text/event-stream", headers=SSE_HEADERS)
