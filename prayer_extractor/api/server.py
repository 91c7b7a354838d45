"""
FastAPI server exposing the working record set. Run with run_api_server(app)
in a background thread when api.enabled is true.
Docs when enabled: http://<host>:<port>/docs
The credential is accepted on /api/extract but never returned or logged.
State changes are handed to extractor_app.run_on_main so the tk main loop
stays the only thread that mutates the state.
"""
import base64
import binascii
import logging
import threading
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException

from prayer_extractor.core.errors import (
    BotConfigurationError,
    ExtractionError,
    InvalidTransitionError,
    PrayerDataError,
)
from prayer_extractor.core.exporter import DEFAULT_EXPORT_FILENAME, export_to_file
from prayer_extractor.core.models import (
    ApiKeyRequest,
    ApiKeyResponse,
    ExportResponse,
    ExtractRequest,
    JsonTextRequest,
    ProviderInfo,
    RecordEditRequest,
    RecordsResponse,
    RecordValidationResponse,
    SendResponse,
    StateResponse,
)
from prayer_extractor.core.state import AppState, InputMethod
from prayer_extractor.core.validation import parse_prayer_json
from prayer_extractor.providers import (
    PROVIDER_INFO,
    ImagePayload,
    extract_prayer_times,
    validate_api_key,
)

logger = logging.getLogger(__name__)


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


def create_app(extractor_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given app's state and config."""
    app = FastAPI(title="Prayer Extractor API", description="Validate, extract, edit and export prayer times")

    def state():
        return extractor_app.state

    def on_main(fn):
        return extractor_app.run_on_main(fn)

    def snapshot() -> List[Dict[str, str]]:
        return on_main(lambda: [dict(r) for r in state().records])

    @app.get("/api/state", response_model=StateResponse)
    def get_state() -> StateResponse:
        return StateResponse(**on_main(lambda: state().summary()))

    @app.get("/api/providers", response_model=List[ProviderInfo])
    def list_providers() -> List[ProviderInfo]:
        return [ProviderInfo(tag=tag, **info) for tag, info in PROVIDER_INFO.items()]

    @app.post("/api/keys/validate", response_model=ApiKeyResponse)
    def check_api_key(body: ApiKeyRequest) -> ApiKeyResponse:
        result = validate_api_key(body.provider, body.api_key)
        return ApiKeyResponse(is_valid=result.is_valid, message=result.message)

    @app.get("/api/records", response_model=RecordsResponse)
    def get_records() -> RecordsResponse:
        return RecordsResponse(records=snapshot())

    @app.post("/api/records/validate", response_model=RecordValidationResponse)
    def check_records(body: JsonTextRequest) -> RecordValidationResponse:
        try:
            records = parse_prayer_json(body.text)
        except PrayerDataError as e:
            return RecordValidationResponse(valid=False, reason=e.reason, index=e.index)
        return RecordValidationResponse(valid=True, record_count=len(records))

    @app.post("/api/records", response_model=RecordsResponse)
    def submit_records(body: JsonTextRequest) -> RecordsResponse:
        try:
            records = on_main(lambda: state().submit_json(body.text))
        except PrayerDataError as e:
            raise HTTPException(status_code=422, detail={"reason": e.reason, "index": e.index})
        except InvalidTransitionError as e:
            raise _conflict(e)
        return RecordsResponse(records=records)

    @app.patch("/api/records/{index}", response_model=RecordsResponse)
    def edit_record(index: int, body: RecordEditRequest) -> RecordsResponse:
        def apply():
            state().update_record(index, body.field, body.value)
            return [dict(r) for r in state().records]

        try:
            records = on_main(apply)
        except InvalidTransitionError as e:
            raise _conflict(e)
        except KeyError:
            raise HTTPException(status_code=422, detail=f"Unknown field: {body.field}")
        except IndexError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return RecordsResponse(records=records)

    @app.post("/api/extract", response_model=StateResponse)
    def extract(body: ExtractRequest) -> StateResponse:
        """Run the image path end to end. Failures land in the error state, not in HTTP errors."""
        try:
            data = base64.b64decode(body.image_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=422, detail="image_base64 is not valid base64")
        if not body.mime_type.startswith("image/"):
            raise HTTPException(status_code=422, detail="mime_type must be an image type")
        image = ImagePayload(data=data, mime_type=body.mime_type, name=body.name)

        def begin():
            st = state()
            # Refuse before touching provider or credential
            st.ensure_can_extract()
            if st.state == AppState.IDLE:
                st.choose_method(InputMethod.IMAGE)
            st.set_provider(body.provider)
            st.set_api_key(body.api_key)
            if not st.begin_extraction(image_preview=image):
                return None
            return st.attempt, st.provider, st.api_key

        try:
            started = on_main(begin)
        except InvalidTransitionError as e:
            raise _conflict(e)

        if started:
            attempt, provider, api_key = started
            providers_config = extractor_app.config.section("providers")
            records, error = None, None
            try:
                records = extract_prayer_times(image, provider, api_key, providers_config)
            except (ExtractionError, ValueError) as e:
                logger.error(f"Extraction failed: {e}")
                error = e

            def finish():
                st = state()
                if not st.is_current(attempt):
                    logger.debug(f"Dropping stale result of attempt {attempt}")
                elif error is not None:
                    st.fail_extraction(error)
                else:
                    st.complete_extraction(records)

            on_main(finish)
        return StateResponse(**on_main(lambda: state().summary()))

    @app.post("/api/export", response_model=ExportResponse)
    def export() -> ExportResponse:
        records = snapshot()
        if not records:
            raise HTTPException(status_code=409, detail="No records to export")
        export_config = extractor_app.config.section("export")
        path = export_to_file(
            records,
            export_config.get("directory"),
            export_config.get("filename") or DEFAULT_EXPORT_FILENAME,
        )
        return ExportResponse(path=str(path), record_count=len(records))

    @app.post("/api/send", response_model=SendResponse)
    def send() -> SendResponse:
        records = snapshot()
        if not records:
            raise HTTPException(status_code=409, detail="No records to send")
        sender = extractor_app.bot_sender
        try:
            sender.send(records)
        except BotConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return SendResponse(status=sender.status, error=sender.last_error)

    @app.post("/api/reset", response_model=StateResponse)
    def reset() -> StateResponse:
        def apply():
            state().reset()
            return state().summary()

        return StateResponse(**on_main(apply))

    return app


def run_api_server(extractor_app: Any) -> None:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config: Dict[str, Any] = extractor_app.config.section("api")
    if not api_config.get("enabled", False):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(extractor_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
