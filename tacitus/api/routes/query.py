"""POST /api/query: answer a question about where the user is."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tacitus.api.auth import require_api_key
from tacitus.api.dependencies import get_answer_service, get_resolver
from tacitus.api.schemas import ErrorResponse, QueryRequest, QueryResponse
from tacitus.services.answerer import AnswerService
from tacitus.services.context_resolver import ContextResolver

router = APIRouter(prefix="/api", tags=["query"], dependencies=[Depends(require_api_key)])


@router.post(
    "/query",
    summary="Ask about the current location",
    description=(
        "Match the device coordinates to the nearest stored location (within "
        "0.1 degrees on each axis) and ask the language model the user's "
        "question with that place and its Wikipedia articles as context. "
        "When nothing is stored nearby the place is reported as "
        "'unknown location'. Model failures still return 200 with an "
        "apology in `answer`."
    ),
    response_model=QueryResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Database error"},
    },
)
async def post_query(
    body: QueryRequest,
    resolver: ContextResolver = Depends(get_resolver),
    answerer: AnswerService = Depends(get_answer_service),
):
    context = await resolver.resolve_query_context(body.latitude, body.longitude)
    outcome = await answerer.answer(body.query, context)
    return {"answer": outcome.value}
