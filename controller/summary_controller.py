# controller/summary_controller.py
from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from controller.controller_dependencies import get_summary_service
from core.streaming import PipelineMode
from model.api import SummarizeRequest
from model.summary import SummaryResult
from service.summary_service import SummaryService
from util.constants import InternalURIs

SSE_HEADERS = {"Cache-Control": "no-cache, no-transform", "X-Accel-Buffering": "no"}

summary_router = APIRouter(
    dependencies=[
        Depends(
            RateLimiter(
                times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
            )
        )
    ]
)


@summary_router.post(
    InternalURIs.RESUME,
    response_model=SummaryResult,
    status_code=status.HTTP_200_OK,
)
async def resume(
    payload: SummarizeRequest,
    service: SummaryService = Depends(get_summary_service),
) -> SummaryResult:
    return await service.summarize(payload)


@summary_router.post(InternalURIs.RESUME_STREAM)
async def resume_stream(
    payload: SummarizeRequest,
    service: SummaryService = Depends(get_summary_service),
):
    mode = PipelineMode.SUMMARY_JSON if payload.format == "json" else PipelineMode.SUMMARY_TEXT
    generator = service.stream(payload, mode)
    return StreamingResponse(generator, media_type="text/event-stream", headers=SSE_HEADERS)


@summary_router.post(InternalURIs.PAGE_ANSWER_STREAM)
async def page_answer_stream(
    payload: SummarizeRequest,
    service: SummaryService = Depends(get_summary_service),
):
    generator = service.stream(payload, PipelineMode.ANSWER)
    return StreamingResponse(generator, media_type="text/event-stream", headers=SSE_HEADERS)
