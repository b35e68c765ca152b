"""
Webhook server

FastAPI app receiving gateway webhooks:

- POST /quiz/sms/incoming   inbound SMS from the gateway ({from, message})
- POST /quiz/start          start a quiz directly, bypassing the gateway (testing)
- GET  /quiz/leaderboard    top subscribers by completed-quiz total
- GET  /health              liveness
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import Config, config
from .dispatcher import CommandDispatcher
from .gateway import get_gateway
from .gateway.base import GatewayTransport
from .gateway.executor import DeliveryExecutor
from .quiz.engine import ProgressionEngine
from .quiz.provider import QuestionBankProvider
from .quiz.schema import InsufficientQuestions, StoreError
from .quiz.scores import InMemoryScoreStore
from .quiz.store import get_session_store

logger = logging.getLogger(__name__)


class IncomingSms(BaseModel):
    """Webhook body posted by the gateway for a mobile-originated SMS."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    sender: Optional[str] = Field(default=None, alias="from")
    message: Optional[str] = None


class StartRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phoneNumber: Optional[str] = None


def build_dispatcher(
    cfg: Optional[Config] = None,
    transport: Optional[GatewayTransport] = None,
) -> CommandDispatcher:
    """
    Wire the default object graph from configuration.

    Args:
        cfg: Configuration (defaults to global config)
        transport: Gateway transport (defaults to the configured one)
    """
    cfg = cfg or config

    if cfg.quiz.question_bank_path:
        provider = QuestionBankProvider.from_json_file(cfg.quiz.question_bank_path)
    else:
        provider = QuestionBankProvider.sample()

    engine = ProgressionEngine(
        store=get_session_store(cfg.store),
        provider=provider,
        scores=InMemoryScoreStore(),
        question_count=cfg.quiz.question_count,
    )
    if transport is None:
        options = {"settings": cfg.gateway} if cfg.gateway.transport == "pisi" else {}
        transport = get_gateway(cfg.gateway.transport, **options)
        logger.info(f"Using {transport.name} gateway transport")
    executor = DeliveryExecutor(transport, retry=cfg.retry)
    return CommandDispatcher(engine, executor)


def create_app(dispatcher: Optional[CommandDispatcher] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        dispatcher: Pre-wired dispatcher; built from config at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: configure logging and wiring. Shutdown: close gateway and store."""
        logging.basicConfig(
            level=getattr(logging, config.server.log_level, logging.INFO),
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        )
        if app.state.dispatcher is None:
            app.state.dispatcher = build_dispatcher()
            logger.info("Dispatcher wired from configuration")
        yield
        active = app.state.dispatcher
        await active.executor.transport.aclose()
        await active.engine.store.aclose()

    app = FastAPI(title="Brain Teaser SMS Quiz", version="0.1.0", lifespan=lifespan)
    app.state.dispatcher = dispatcher

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/quiz/sms/incoming")
    async def incoming_sms(body: IncomingSms, request: Request):
        if not body.sender or not body.message:
            return JSONResponse(status_code=400, content={"error": "Missing from or message"})

        active: CommandDispatcher = request.app.state.dispatcher
        try:
            await active.handle(body.sender, body.message)
        except Exception:
            # Webhook is acknowledged either way
            logger.exception(f"Dispatch failed for {body.sender}; no reply sent")
        return {"status": "ok"}

    @app.post("/quiz/start")
    async def start_quiz(body: StartRequest, request: Request):
        if not body.phoneNumber:
            return JSONResponse(status_code=400, content={"error": "Missing phoneNumber"})

        active: CommandDispatcher = request.app.state.dispatcher
        try:
            first = await active.engine.start(body.phoneNumber)
        except InsufficientQuestions as e:
            raise HTTPException(status_code=503, detail=str(e))
        except StoreError as e:
            logger.error(f"Session store unavailable starting quiz for {body.phoneNumber}: {e}")
            raise HTTPException(status_code=503, detail="Session store unavailable")
        return {"firstQuestion": first.to_dict()}

    @app.get("/quiz/leaderboard")
    async def leaderboard(request: Request, limit: int = 10):
        active: CommandDispatcher = request.app.state.dispatcher
        if active.engine.scores is None:
            return {"leaderboard": []}
        entries = await active.engine.scores.leaderboard(limit)
        return {"leaderboard": [e.to_dict() for e in entries]}

    return app


app = create_app()
