"""
Chat endpoints.
"""
from fastapi import APIRouter, Depends
from datetime import datetime

from enrolment_pulse.schemas.chat import (
    AssistantResponse,
    ChatRequest,
    ExampleQueriesResponse,
    QueryChatResponse,
)
from enrolment_pulse.services.chat_service import ChatService
from enrolment_pulse.services.data_loader import EnrolmentDataStore, get_data_store
from enrolment_pulse.services.llm_client import GeminiClient, get_llm_client
from enrolment_pulse.services.query_engine import EXAMPLE_QUERIES, QueryEngine

router = APIRouter()


@router.post("", response_model=QueryChatResponse)
def chat(
    request: ChatRequest,
    store: EnrolmentDataStore = Depends(get_data_store)
):
    """Answer a question with the local query engine only."""
    insight = QueryEngine(store.records()).process(request.message)
    return {
        "success": True,
        "response": insight.answer,
        "intent": insight.intent.value,
        "data": insight.data,
        "chart_type": insight.chart_type,
        "chart_data": insight.chart_data,
        "timestamp": datetime.now(),
    }


@router.post("/assistant", response_model=AssistantResponse)
def chat_assistant(
    request: ChatRequest,
    store: EnrolmentDataStore = Depends(get_data_store),
    client: GeminiClient = Depends(get_llm_client)
):
    """
    Answer with Gemini when GEMINI_API_KEY is set.

    Without a key, or when the call fails, the local query engine answers
    and the response is marked as a fallback.
    """
    history = [m.model_dump() for m in request.history]
    reply = ChatService(store.records(), client).reply(request.message, history)
    return {"success": True, **reply.to_dict(), "timestamp": datetime.now()}


@router.get("/examples", response_model=ExampleQueriesResponse)
def get_example_queries():
    """Sample questions for the chat UI."""
    return {"examples": list(EXAMPLE_QUERIES)}
