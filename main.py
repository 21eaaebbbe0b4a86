import uvicorn
import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

import config
from context.models import AudioAnalysisTick, ContextSnapshot
from context.storage import JsonFileKeyValueStore
from context.preference_store import PreferenceStore
from context.interaction_tracker import InteractionTracker
from systems.frequency_controller import FrequencyController
from systems.rule_based_generator import RuleBasedGenerator
from systems.hybrid_generator import HybridGenerator
from systems.learning_coordinator import LearningCoordinator
from services.llm_generator import OllamaCapability
from services.comment_orchestrator import CommentOrchestrator
from errors import InvalidFeedback, GenerationFailed


# --- Request Payloads ---
class ContextPayload(BaseModel):
    recent_transcript: str = ""
    current_topic: Optional[str] = None
    engagement_level: float = Field(0.5, ge=0.0, le=1.0)
    speech_volume: float = Field(0.0, ge=0.0, le=1.0)
    speech_rate: float = Field(1.0, ge=0.0)
    silence_duration_seconds: float = Field(0.0, ge=0.0)

    def to_snapshot(self) -> ContextSnapshot:
        return ContextSnapshot(**self.model_dump())


class AudioTickPayload(BaseModel):
    volume: float = Field(0.0, ge=0.0, le=1.0)
    speech_rate: float = Field(1.0, ge=0.0)
    is_speaking: bool = False
    silence_duration_ms: float = Field(0.0, ge=0.0)
    average_volume: float = 0.0
    volume_variance: float = 0.0
    duration_ms: float = 100.0


class SpeechPayload(BaseModel):
    text: str
    timestamp: Optional[float] = None


class FeedbackPayload(BaseModel):
    comment_id: str
    kind: str
    session_id: Optional[str] = None
    context: Optional[ContextPayload] = None


class StartPayload(BaseModel):
    topic: Optional[str] = None
    openers: int = Field(2, ge=0, le=5)


def build_orchestrator(user_id: str = config.DEFAULT_USER_ID, capability=None) -> CommentOrchestrator:
    learning = LearningCoordinator(
        preferences=PreferenceStore(JsonFileKeyValueStore(config.PROFILES_DIR)),
        tracker=InteractionTracker(),
    )
    generator = HybridGenerator(RuleBasedGenerator(), capability)
    return CommentOrchestrator(
        frequency=FrequencyController(),
        generator=generator,
        learning=learning,
        user_id=user_id,
    )


def create_app(orchestrator: Optional[CommentOrchestrator] = None, capability: Optional[OllamaCapability] = None) -> FastAPI:
    if orchestrator is None:
        capability = capability or OllamaCapability()
        orchestrator = build_orchestrator(capability=capability)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if capability is not None:
            await capability.initialize()
        if not orchestrator.started:
            await orchestrator.start()
        print("✅ Companion Engine is READY")
        yield
        print("🛑 Shutting down...")
        if capability is not None:
            await capability.close()

    app = FastAPI(title="Live Chat Companion", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    @app.post("/start")
    async def start_session(payload: StartPayload):
        await orchestrator.start(payload.topic, payload.openers)
        return {"session_id": orchestrator.session_id}

    @app.post("/audio")
    async def ingest_audio(payload: AudioTickPayload):
        accepted = orchestrator.update_audio(AudioAnalysisTick(**payload.model_dump()))
        return {"accepted": accepted, "rate": orchestrator.frequency.current_rate}

    @app.post("/tick")
    async def tick(payload: ContextPayload):
        try:
            comment = await orchestrator.tick(payload.to_snapshot())
        except GenerationFailed as e:
            raise HTTPException(status_code=503, detail=str(e))
        return {"comment": comment.to_dict() if comment else None}

    @app.post("/speech")
    async def speech(payload: SpeechPayload):
        results = await orchestrator.on_speech(payload.text, payload.timestamp)
        return {"results": [r.to_dict() for r in results]}

    @app.post("/feedback")
    async def feedback(payload: FeedbackPayload):
        context = payload.context.to_snapshot() if payload.context else None
        try:
            event = await orchestrator.record_feedback(payload.comment_id, payload.kind, context, payload.session_id)
        except InvalidFeedback as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"comment_id": event.comment_id, "kind": event.kind.value, "role": event.role.value}

    @app.get("/weights/{user_id}")
    async def get_weights(user_id: str) -> Dict[str, float]:
        return {role.value: weight for role, weight in orchestrator.get_weights(user_id).items()}

    @app.post("/reset/{user_id}")
    async def reset(user_id: str):
        await orchestrator.reset(user_id)
        return {role.value: weight for role, weight in orchestrator.get_weights(user_id).items()}

    @app.get("/status")
    async def status() -> Dict[str, Any]:
        return orchestrator.get_status()

    return app


def run_server():
    app = create_app()
    config_uvicorn = uvicorn.Config(app, host=config.COMPANION_HOST, port=config.COMPANION_PORT, log_level="warning", loop="asyncio")
    server = uvicorn.Server(config_uvicorn)
    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        print("\n⚠️ Keyboard interrupt")


if __name__ == "__main__":
    print("="*60)
    print("💬 LIVE CHAT COMPANION - Starting...")
    print("="*60)
    run_server()
