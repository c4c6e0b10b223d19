# api.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from chatbot import Chatbot, build_chatbot, error_payload
from config import configure_logging, get_settings
from errors import AssistantError


class QueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    query_text: str = Field(alias="queryText")


class QueryResponse(BaseModel):
    ok: bool
    text: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    followups: Optional[List[str]] = None
    errorCode: Optional[str] = None
    userMessage: Optional[str] = None


def create_app(chatbot: Optional[Chatbot] = None, debug_endpoints: Optional[bool] = None) -> FastAPI:
    app = FastAPI(title="Metas Chatbot API")
    app.state.chatbot = chatbot
    app.state.debug_endpoints = debug_endpoints

    @app.on_event("startup")
    def startup():
        settings = get_settings()
        configure_logging(settings.log_level)
        if app.state.chatbot is None:
            app.state.chatbot = build_chatbot(settings)
        if app.state.debug_endpoints is None:
            app.state.debug_endpoints = settings.debug_endpoints

    # Transport callers must never retry on our failures: always 200.
    @app.exception_handler(RequestValidationError)
    def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=200,
            content={
                "ok": False,
                "errorCode": "BAD_REQUEST",
                "userMessage": "Envie userId e queryText.",
            },
        )

    @app.get("/")
    def root():
        return {
            "status": "ok",
            "message": "Metas Chatbot API is running",
            "docs": "/docs"
        }

    @app.post("/query", response_model=QueryResponse, response_model_exclude_none=True)
    def query(request: QueryRequest):
        return app.state.chatbot.answer(request.user_id, request.query_text)

    @app.get("/debug/feed")
    def debug_feed():
        if not app.state.debug_endpoints:
            return JSONResponse(status_code=404, content={"detail": "Not Found"})
        try:
            return {"ok": True, **app.state.chatbot.feed.describe()}
        except AssistantError as e:
            return error_payload(e)

    @app.get("/debug/memory")
    def debug_memory():
        if not app.state.debug_endpoints:
            return JSONResponse(status_code=404, content={"detail": "Not Found"})
        return app.state.chatbot.memory.self_test()

    return app


app = create_app()
