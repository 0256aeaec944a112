"""Main FastAPI application."""

import logging
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import FileResponse

from .api.models import (
    CheckInRequest,
    CheckInResponse,
    DayDetailResponse,
    DayRowResponse,
    IntentionHistoryResponse,
    IntentionModel,
    IntentionSetRequest,
    IntentionSetResponse,
    OverrideRequest,
    OverrideResponse,
    ParsedIntentionModel,
    ParseRequest,
    ParseResponse,
    StreakResponse,
)
from .checkins.recorder import CheckInRecorder
from .config import settings
from .dashboard.renderer import DashboardRenderer
from .intentions.client import LLMClientError, OpenAIClient
from .intentions.extractor import CheckInExtractor
from .intentions.parser import IntentionsParser, InvalidPayload
from .progress import calculator
from .progress.assembler import ProgressDataAssembler
from .progress.models import ManualProgressOverride
from .storage.database import ProgressDatabase

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Attune",
    description="Intentions and progress tracking from spoken check-ins",
    version="1.0.0",
)

PARSE_FAILED_MESSAGE = "Could not understand that check-in, try again"


@lru_cache
def get_database() -> ProgressDatabase:
    return ProgressDatabase(settings.database_path)


def get_assembler(db: ProgressDatabase = Depends(get_database)) -> ProgressDataAssembler:
    return ProgressDataAssembler(db)


def get_llm_client():
    """Chat-completion client for one request, closed when it finishes."""
    client = OpenAIClient()
    try:
        yield client
    finally:
        client.close()


def get_parser(client: OpenAIClient = Depends(get_llm_client)) -> IntentionsParser:
    return IntentionsParser(client=client)


def get_extractor(client: OpenAIClient = Depends(get_llm_client)) -> CheckInExtractor:
    return CheckInExtractor(client=client)


@lru_cache
def get_renderer() -> DashboardRenderer:
    return DashboardRenderer(settings.dashboard_output_dir)


def _require_date_key(date_key: str) -> str:
    if calculator.parse_date_key(date_key) is None:
        raise HTTPException(status_code=400, detail=f"Invalid date key: {date_key}")
    return date_key


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Attune",
        "version": "1.0.0",
        "endpoints": {
            "days": "/api/progress/days",
            "day": "/api/progress/days/{date_key}",
            "history": "/api/intentions/{intention_id}/history",
            "streak": "/api/streak",
            "parse": "/api/intentions/parse",
            "current_intentions": "/api/intentions/current",
            "intention_sets": "/api/intention-sets",
            "check_ins": "/api/check-ins",
            "dashboard": "/api/dashboard",
            "status": "/status",
        },
    }


@app.get("/status")
async def status():
    """Server status endpoint."""
    return {
        "status": "running",
        "version": "1.0.0",
        "timestamp": datetime.now().astimezone().isoformat(),
        "llm_configured": bool(settings.openai_api_key),
    }


@app.get("/api/progress/days", response_model=list[DayRowResponse])
def days_endpoint(assembler: ProgressDataAssembler = Depends(get_assembler)):
    """Overall percent for each of the trailing days, today first."""
    rows = assembler.load_day_rows()
    return [DayRowResponse.from_row(row) for row in rows]


@app.get("/api/progress/days/{date_key}", response_model=DayDetailResponse)
def day_detail_endpoint(
    date_key: str, assembler: ProgressDataAssembler = Depends(get_assembler)
):
    """Intentions, entries, check-ins and mood for one day."""
    detail = assembler.load_day_detail(_require_date_key(date_key))
    return DayDetailResponse.from_detail(detail)


@app.get("/api/intentions/{intention_id}/history", response_model=IntentionHistoryResponse)
def intention_history_endpoint(
    intention_id: str,
    db: ProgressDatabase = Depends(get_database),
    assembler: ProgressDataAssembler = Depends(get_assembler),
):
    """One intention across the trailing days."""
    intention = db.load_intention(intention_id)
    if intention is None:
        raise HTTPException(status_code=404, detail=f"Intention not found: {intention_id}")

    history = assembler.load_intention_history(intention)
    return IntentionHistoryResponse.from_history(history)


@app.get("/api/streak", response_model=StreakResponse)
def streak_endpoint(assembler: ProgressDataAssembler = Depends(get_assembler)):
    return StreakResponse(streak=assembler.load_streak())


@app.put("/api/overrides/{date_key}/{intention_id}", response_model=OverrideResponse)
def set_override_endpoint(
    date_key: str,
    intention_id: str,
    body: OverrideRequest,
    db: ProgressDatabase = Depends(get_database),
):
    """Replace the computed total for an intention on a day."""
    _require_date_key(date_key)

    intention = db.load_intention(intention_id)
    if intention is None:
        raise HTTPException(status_code=404, detail=f"Intention not found: {intention_id}")

    override = ManualProgressOverride(
        date_key=date_key,
        intention_id=intention_id,
        amount=body.amount,
        unit=body.unit or intention.unit,
    )
    db.set_override(override)

    return OverrideResponse(
        date_key=override.date_key,
        intention_id=override.intention_id,
        amount=override.amount,
        unit=override.unit,
    )


@app.delete("/api/overrides/{date_key}/{intention_id}")
def clear_override_endpoint(
    date_key: str,
    intention_id: str,
    db: ProgressDatabase = Depends(get_database),
):
    """Clear an override so the total is computed from entries again."""
    removed = db.clear_override(_require_date_key(date_key), intention_id)
    return {"status": "success", "removed": removed}


@app.post("/api/intentions/parse", response_model=ParseResponse)
def parse_endpoint(body: ParseRequest, parser: IntentionsParser = Depends(get_parser)):
    """
    Parse a spoken transcript into intention drafts.

    The call to the model blocks for up to the configured timeout, so
    this runs in FastAPI's threadpool.
    """
    logger.info(f"Parse request ({len(body.transcript)} chars)")

    try:
        intentions = parser.parse_transcript(body.transcript)
    except InvalidPayload as e:
        logger.warning(f"Unusable intentions payload: {e}")
        raise HTTPException(status_code=422, detail=PARSE_FAILED_MESSAGE) from e
    except LLMClientError as e:
        logger.error(f"Intentions request failed: {e}")
        raise HTTPException(status_code=502, detail=PARSE_FAILED_MESSAGE) from e

    return ParseResponse(intentions=[ParsedIntentionModel.from_parsed(i) for i in intentions])


@app.get("/api/intentions/current", response_model=list[IntentionModel])
def current_intentions_endpoint(assembler: ProgressDataAssembler = Depends(get_assembler)):
    """Active intentions of the set in effect today."""
    return [IntentionModel.from_record(i) for i in assembler.load_current_intentions()]


@app.post("/api/intention-sets", response_model=IntentionSetResponse)
def create_intention_set_endpoint(
    body: IntentionSetRequest, db: ProgressDatabase = Depends(get_database)
):
    """Save intention drafts and start tracking them as a new set."""
    intentions = [draft.to_parsed().to_intention() for draft in body.intentions]
    if any(not intention.title for intention in intentions):
        raise HTTPException(status_code=422, detail="Intention title must not be empty")

    for intention in intentions:
        db.save_intention(intention)

    intention_set = db.start_new_intention_set([i.id for i in intentions])
    logger.info(f"Started intention set {intention_set.id} with {len(intentions)} intentions")

    return IntentionSetResponse(
        intention_set_id=intention_set.id,
        started_at=intention_set.started_at,
        intentions=[IntentionModel.from_record(i) for i in intentions],
    )


@app.post("/api/check-ins", response_model=CheckInResponse)
def check_in_endpoint(
    body: CheckInRequest,
    db: ProgressDatabase = Depends(get_database),
    extractor: CheckInExtractor = Depends(get_extractor),
):
    """
    Record a check-in transcript.

    Stores the check-in, the progress it reports and any mood. Extraction
    failures fall back to keyword matching rather than failing the request.
    """
    logger.info(f"Check-in request ({len(body.transcript)} chars)")

    result = CheckInRecorder(db, extractor).record(
        body.transcript, audio_file_name=body.audio_file_name
    )
    return CheckInResponse.from_result(result)


@app.get("/api/dashboard")
def dashboard_endpoint(
    assembler: ProgressDataAssembler = Depends(get_assembler),
    renderer: DashboardRenderer = Depends(get_renderer),
):
    """Render the trailing-days rollup as a PNG."""
    logger.info("Rendering dashboard with fresh data...")

    rows = assembler.load_day_rows()
    streak = assembler.load_streak()
    filename, file_path = renderer.render(rows, streak)

    logger.info(f"Serving dashboard: {filename}")
    return FileResponse(file_path, media_type="image/png")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
