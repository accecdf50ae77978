from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from .config import Settings
from .engine import run_analysis
from .errors import DuplicateRecord, IngestError, InventoryAnalyzerError, NotFound, StoreError
from .export import export_csv, export_filename
from .ingest import parse_inventory
from .models import (
    AnalysisResult,
    AnalysisSummary,
    AnalyzeResponse,
    ApprovedSoftware,
    ApprovedSoftwareIn,
    ApprovedSoftwareUpdate,
    BulkDispositionRequest,
    BulkDispositionResponse,
    DispositionIn,
    DispositionLookupRequest,
    DispositionRecord,
    ExclusionRule,
    ExclusionRuleIn,
    ExclusionRuleUpdate,
    ExportRequest,
    Feedback,
    FeedbackIn,
    FeedbackResponse,
    HealthResponse,
    HistoryEntry,
    MappingRule,
    MappingRuleIn,
    MappingRuleUpdate,
    SavedClient,
    SavedClientIn,
    SavedClientSummary,
    SavedClientUpdate,
    SuccessResponse,
)
from .rules import DEFAULT_DISPOSITION, UPLOAD_EXTENSIONS
from .store import InventoryDatabase

logger = logging.getLogger(__name__)


def summarize(result: AnalysisResult, total_input: int) -> AnalysisSummary:
    """Summary counters are derived from a finished run, never inside the engine."""
    return AnalysisSummary(
        total_input=total_input,
        total_output=len(result.included),
        excluded=len(result.excluded),
        unmapped=len(result.unmapped),
        pending_disposition=sum(1 for i in result.included if i.disposition == DEFAULT_DISPOSITION),
    )


def create_app(settings: Optional[Settings] = None, db: Optional[InventoryDatabase] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    db = db or InventoryDatabase(settings.db_path)
    db.init_schema()
    if settings.seed_rules:
        db.seed_defaults()

    app = FastAPI(
        title="software-inventory-analyzer",
        description="Rule-based normalization of software inventory exports",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.db = db

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DuplicateRecord)
    async def _duplicate(request: Request, exc: DuplicateRecord):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.error("Store failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse)
    def health():
        if db.ping():
            return HealthResponse()
        return HealthResponse(status="degraded", database="disconnected")

    # --- analysis ---

    @app.post("/api/analyze", response_model=AnalyzeResponse)
    async def analyze_upload(file: UploadFile = File(...), agency: Optional[str] = Form(None)):
        filename = file.filename or ""
        if not filename.lower().endswith(UPLOAD_EXTENSIONS):
            raise HTTPException(status_code=422, detail="Only Excel and CSV files are allowed")

        too_large = HTTPException(status_code=413, detail=f"Upload exceeds {settings.max_upload_mb} MB")
        if file.size is not None and file.size > settings.max_upload_bytes:
            raise too_large
        raw = await file.read()
        if len(raw) > settings.max_upload_bytes:
            raise too_large

        # Parsing, analysis and history writes are blocking; keep them off the event loop.
        try:
            parsed = await run_in_threadpool(parse_inventory, raw, filename=filename, agency=agency)
        except IngestError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        try:
            result = await run_in_threadpool(run_analysis, parsed.entries, db, db)
        except InventoryAnalyzerError as exc:
            logger.exception("Analysis failed for %r", filename)
            raise HTTPException(status_code=500, detail=f"Analysis failed: {exc}") from exc

        try:
            await run_in_threadpool(
                db.log_history,
                HistoryEntry(
                    upload_filename=filename,
                    agency_name=parsed.agency,
                    input_count=len(parsed.entries),
                    output_count=len(result.included),
                    excluded_count=len(result.excluded),
                ),
            )
        except StoreError as exc:
            logger.warning("Could not log to history: %s", exc)

        return AnalyzeResponse(
            agency=parsed.agency,
            summary=summarize(result, total_input=len(parsed.entries)),
            included=result.included,
            excluded=result.excluded,
            unmapped=result.unmapped,
        )

    @app.post("/api/export/csv")
    def export_results(payload: ExportRequest):
        body = export_csv(payload.data, agency=payload.agency)
        return Response(
            content=body,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export_filename(payload.agency)}"'},
        )

    # --- rules ---

    @app.get("/api/exclusion-rules", response_model=List[ExclusionRule])
    def list_exclusion_rules():
        return db.list_exclusion_rules()

    @app.post("/api/exclusion-rules", response_model=ExclusionRule)
    def create_exclusion_rule(rule: ExclusionRuleIn):
        return db.create_exclusion_rule(rule)

    @app.put("/api/exclusion-rules/{rule_id}", response_model=ExclusionRule)
    def update_exclusion_rule(rule_id: int, rule: ExclusionRuleUpdate):
        return db.update_exclusion_rule(rule_id, rule)

    @app.delete("/api/exclusion-rules/{rule_id}", response_model=SuccessResponse)
    def delete_exclusion_rule(rule_id: int):
        db.delete_exclusion_rule(rule_id)
        return SuccessResponse()

    @app.get("/api/software-mappings", response_model=List[MappingRule])
    def list_mapping_rules():
        return db.list_mapping_rules()

    @app.post("/api/software-mappings", response_model=MappingRule)
    def create_mapping_rule(rule: MappingRuleIn):
        return db.create_mapping_rule(rule)

    @app.put("/api/software-mappings/{rule_id}", response_model=MappingRule)
    def update_mapping_rule(rule_id: int, rule: MappingRuleUpdate):
        return db.update_mapping_rule(rule_id, rule)

    @app.delete("/api/software-mappings/{rule_id}", response_model=SuccessResponse)
    def delete_mapping_rule(rule_id: int):
        db.delete_mapping_rule(rule_id)
        return SuccessResponse()

    @app.get("/api/categories", response_model=List[str])
    def categories():
        return db.categories()

    @app.post("/api/feedback", response_model=FeedbackResponse)
    def submit_feedback(item: FeedbackIn):
        return FeedbackResponse(feedback=db.record_feedback(item))

    @app.get("/api/feedback", response_model=List[Feedback])
    def list_feedback():
        return db.list_feedback(limit=100)

    # --- approved software and dispositions ---

    @app.get("/api/approved-software", response_model=List[ApprovedSoftware])
    def list_approved_software():
        return db.list_approved_software()

    @app.post("/api/approved-software", response_model=ApprovedSoftware)
    def create_approved_software(item: ApprovedSoftwareIn):
        try:
            return db.create_approved_software(item)
        except DuplicateRecord as exc:
            raise HTTPException(status_code=400, detail="Software with this name already exists") from exc

    @app.put("/api/approved-software/{item_id}", response_model=ApprovedSoftware)
    def update_approved_software(item_id: int, item: ApprovedSoftwareUpdate):
        return db.update_approved_software(item_id, item)

    @app.delete("/api/approved-software/{item_id}", response_model=SuccessResponse)
    def delete_approved_software(item_id: int):
        db.delete_approved_software(item_id)
        return SuccessResponse()

    @app.get("/api/disposition-mappings", response_model=List[DispositionRecord])
    def list_dispositions():
        return db.list_dispositions()

    @app.post("/api/disposition-mappings/bulk", response_model=BulkDispositionResponse)
    def bulk_save_dispositions(payload: BulkDispositionRequest):
        return BulkDispositionResponse(updated=db.save_dispositions(payload.mappings))

    @app.post("/api/disposition-mappings/lookup", response_model=List[DispositionRecord])
    def lookup_dispositions(payload: DispositionLookupRequest):
        return db.fetch_dispositions(payload.canonical_names)

    @app.post("/api/disposition-mappings", response_model=DispositionRecord)
    def save_disposition(item: DispositionIn):
        return db.save_disposition(item)

    @app.get("/api/disposition-mappings/{canonical_name:path}", response_model=Optional[DispositionRecord])
    def get_disposition(canonical_name: str):
        return db.get_disposition(canonical_name)

    @app.delete("/api/disposition-mappings/{disposition_id}", response_model=SuccessResponse)
    def delete_disposition(disposition_id: int):
        db.delete_disposition(disposition_id)
        return SuccessResponse()

    # --- saved clients ---

    @app.get("/api/clients", response_model=List[SavedClientSummary])
    def list_clients():
        return db.list_clients()

    @app.get("/api/clients/{client_id}", response_model=SavedClient)
    def get_client(client_id: int):
        return db.get_client(client_id)

    @app.post("/api/clients", response_model=SavedClient)
    def create_client(item: SavedClientIn):
        return db.create_client(item)

    @app.put("/api/clients/{client_id}", response_model=SavedClient)
    def update_client(client_id: int, item: SavedClientUpdate):
        return db.update_client(client_id, item)

    @app.delete("/api/clients/{client_id}", response_model=SuccessResponse)
    def delete_client(client_id: int):
        db.delete_client(client_id)
        return SuccessResponse()

    return app
