import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import fallbacks
from .coaching import CoachingRequest
from .config import load_settings
from .errors import (
    AccessDenied,
    ConfigurationMissing,
    MalformedModelOutput,
    ModelUnavailable,
    ValidationError,
    truncate,
)
from .models import (
    AdaptiveQuestion,
    AdaptiveQuestionRequest,
    AnalyzePitchRequest,
    ChatMessage,
    ChatTurnRequest,
    ChatTurnResponse,
    DiagnosticFormRequest,
    EvaluatePhaseRequest,
    PersonalizedDiagnostic,
    PhaseEvaluation,
    PitchAnalysis,
    TurnHistoryResponse,
)
from .services import CoachServices, build_services


logger = logging.getLogger("uvicorn.error")

MISSING_CHAT_FIELDS = "Fehlende erforderliche Felder: phaseId und message."
MISSING_EVALUATION_FIELDS = "Fehlende erforderliche Felder: phaseId und conversationHistory."
INVALID_REQUEST = "Ungültige Anfrage. Bitte überprüfe die gesendeten Daten."
PHASE_LOCKED = "Diese Phase ist in deinem Tarif nicht enthalten. Bitte upgrade deinen Plan."
RESET_FAILED = "Der Gesprächsverlauf konnte nicht zurückgesetzt werden. Bitte versuche es später erneut."


def _model_failure_response(status_code: int, exc: Exception) -> JSONResponse:
    payload = fallbacks.get_fallback(fallbacks.COACHING)
    payload["reason"] = type(exc).__name__
    return JSONResponse(status_code=status_code, content=payload)


def create_app(services: Optional[CoachServices] = None) -> FastAPI:
    settings = services.settings if services is not None else load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "services", None) is None
        if owned:
            app.state.services = build_services(settings)
        try:
            yield
        finally:
            if owned:
                app.state.services.close()
                app.state.services = None

    app = FastAPI(title="Pitch Coach Backend", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.frontend_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_services(request: Request) -> CoachServices:
        current = request.app.state.services
        if current is None:
            current = build_services(settings)
            request.app.state.services = current
        return current

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("path=%s validation_error error=%s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("path=%s request_validation_error errors=%s", request.url.path, len(exc.errors()))
        return JSONResponse(status_code=400, content={"error": INVALID_REQUEST})

    @app.exception_handler(AccessDenied)
    async def handle_access_denied(request: Request, exc: AccessDenied) -> JSONResponse:
        logger.info("path=%s access_denied", request.url.path)
        return JSONResponse(status_code=403, content={"error": str(exc)})

    @app.exception_handler(ModelUnavailable)
    async def handle_model_unavailable(request: Request, exc: ModelUnavailable) -> JSONResponse:
        logger.warning("path=%s model_unavailable error=%s", request.url.path, truncate(str(exc)))
        return _model_failure_response(503, exc)

    @app.exception_handler(ConfigurationMissing)
    async def handle_configuration_missing(request: Request, exc: ConfigurationMissing) -> JSONResponse:
        logger.error("path=%s configuration_missing error=%s", request.url.path, exc)
        return _model_failure_response(503, exc)

    @app.exception_handler(MalformedModelOutput)
    async def handle_malformed_output(request: Request, exc: MalformedModelOutput) -> JSONResponse:
        logger.warning("path=%s malformed_model_output error=%s", request.url.path, truncate(str(exc)))
        return _model_failure_response(502, exc)

    @app.get("/health")
    def health(request: Request) -> dict:
        current = get_services(request)
        return {
            "status": "ok",
            "storage": current.tracker.storage_name,
            "llm_configured": current.llm.configured,
            "model": current.settings.llm_model,
        }

    @app.post("/api/analyze-pitch", response_model=PitchAnalysis)
    def analyze_pitch(body: AnalyzePitchRequest, request: Request) -> PitchAnalysis:
        return get_services(request).analyzer.analyze(body.pitch_text, body.diagnostic_context)

    @app.post("/api/chat-turn", response_model=ChatTurnResponse)
    def chat_turn(body: ChatTurnRequest, request: Request) -> ChatTurnResponse:
        if body.phase_id is None or not (body.message or "").strip():
            raise ValidationError(MISSING_CHAT_FIELDS)
        current = get_services(request)
        user_id = body.identity.user_id if body.identity is not None else None
        if not current.access.can_access_phase(user_id, body.phase_id):
            raise AccessDenied(PHASE_LOCKED)

        history = None
        if body.conversation_history is not None:
            history = [message.model_dump() for message in body.conversation_history]
        result = current.coaching.run_turn(
            CoachingRequest(
                phase_id=body.phase_id,
                message=body.message.strip(),
                history=history,
                pitch_context=body.pitch_context,
                identity=body.identity,
            )
        )
        return ChatTurnResponse(
            content=result.visible_reply,
            phase_complete=result.phase_complete,
            completion_score=result.completion_score,
            missing_elements=result.missing_elements,
            metadata=result.metadata,
            metrics=result.metrics,
        )

    @app.post("/api/evaluate-phase", response_model=PhaseEvaluation)
    def evaluate_phase(body: EvaluatePhaseRequest, request: Request) -> PhaseEvaluation:
        if body.phase_id is None or body.conversation_history is None:
            raise ValidationError(MISSING_EVALUATION_FIELDS)
        return get_services(request).evaluator.evaluate(body.phase_id, body.conversation_history)

    @app.post("/api/generate-adaptive-question", response_model=AdaptiveQuestion)
    def generate_adaptive_question(body: AdaptiveQuestionRequest, request: Request) -> AdaptiveQuestion:
        return get_services(request).questions.generate(body.step_id, body.context)

    @app.post("/api/generate-personalized-diagnostic", response_model=PersonalizedDiagnostic)
    def generate_personalized_diagnostic(body: DiagnosticFormRequest, request: Request) -> PersonalizedDiagnostic:
        return get_services(request).diagnostics.generate(body.form_data)

    @app.get("/api/turns/{phase_id}", response_model=TurnHistoryResponse)
    def get_turns(
        phase_id: int,
        request: Request,
        user_id: str = Query(..., alias="userId", min_length=1),
        project_id: str = Query("default", alias="projectId"),
    ) -> TurnHistoryResponse:
        tracker = get_services(request).tracker
        session = tracker.open_session(user_id, project_id, phase_id)
        messages = [ChatMessage(**message) for message in tracker.history(session)]
        return TurnHistoryResponse(
            phase_id=phase_id,
            next_turn=tracker.current_turn(session)["turn"],
            storage="fallback" if session.degraded else tracker.storage_name,
            messages=messages,
        )

    @app.delete("/api/turns/{phase_id}")
    def reset_turns(
        phase_id: int,
        request: Request,
        user_id: str = Query(..., alias="userId", min_length=1),
        project_id: str = Query("default", alias="projectId"),
    ) -> dict:
        tracker = get_services(request).tracker
        session = tracker.session(user_id, project_id, phase_id)
        reset = tracker.reset_phase(session)
        payload = {"phaseId": phase_id, "nextTurn": session.next_turn, "degraded": session.degraded}
        if not reset:
            payload["error"] = RESET_FAILED
            return JSONResponse(status_code=503, content=payload)
        return payload

    return app


app = create_app()
