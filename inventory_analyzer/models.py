from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ExclusionPatternType = Literal["exact", "contains", "startswith", "endswith", "regex"]
MappingPatternType = Literal["exact", "contains", "startswith", "regex"]
DeploymentType = Literal["Desktop", "SaaS", "Both"]
FeedbackAction = Literal["exclude", "include", "categorize", "merge", "rename"]
RawDeviceCount = Union[int, float, str, None]


class CamelModel(BaseModel):
    """Result-shape models go over the wire with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- analysis records ---


class InventoryEntry(CamelModel):
    name: Optional[str] = None
    publisher: Optional[str] = ""
    # Kept as observed; numeric interpretation happens at aggregation time.
    device_count: RawDeviceCount = Field(default=1, examples=[1])


class CanonicalAggregate(CamelModel):
    canonical_name: str
    category: str
    deployment_type: str
    description: str = ""
    original_entries: List[InventoryEntry] = Field(default_factory=list)
    original_count: int = 0
    total_devices: int = 0


class EnrichedAggregate(CanonicalAggregate):
    disposition: str = "pending"
    replacement_id: Optional[int] = None
    replacement_name: Optional[str] = None
    disposition_notes: Optional[str] = None


class ExcludedEntry(CamelModel):
    name: str
    reason: str
    rule_reason: Optional[str] = None


class UnmappedEntry(CamelModel):
    name: str
    publisher: Optional[str] = ""
    device_count: RawDeviceCount = 1


class Classification(CamelModel):
    """Output of the pure classification pass, before disposition enrichment."""

    included: List[CanonicalAggregate] = Field(default_factory=list)
    excluded: List[ExcludedEntry] = Field(default_factory=list)
    unmapped: List[UnmappedEntry] = Field(default_factory=list)


class AnalysisResult(CamelModel):
    included: List[EnrichedAggregate] = Field(default_factory=list)
    excluded: List[ExcludedEntry] = Field(default_factory=list)
    unmapped: List[UnmappedEntry] = Field(default_factory=list)


class AnalysisSummary(CamelModel):
    total_input: int = 0
    total_output: int = 0
    excluded: int = 0
    unmapped: int = 0
    pending_disposition: int = 0


class AnalyzeResponse(AnalysisResult):
    success: bool = True
    agency: Optional[str] = None
    summary: AnalysisSummary


# --- rule store records ---


class ExclusionRuleIn(BaseModel):
    pattern_type: ExclusionPatternType
    pattern_value: str = Field(min_length=1)
    category: str = Field(min_length=1)
    reason: Optional[str] = ""


class ExclusionRuleUpdate(ExclusionRuleIn):
    is_active: bool = True


class ExclusionRule(ExclusionRuleUpdate):
    id: Optional[int] = None


class MappingRuleIn(BaseModel):
    pattern_type: MappingPatternType
    original_pattern: str = Field(min_length=1)
    canonical_name: str = Field(min_length=1)
    category: Optional[str] = None
    deployment_type: Optional[DeploymentType] = None
    description: Optional[str] = None


class MappingRuleUpdate(MappingRuleIn):
    # None keeps the stored flag.
    is_active: Optional[bool] = None


class MappingRule(MappingRuleIn):
    id: Optional[int] = None
    is_active: bool = True


# --- dispositions and approved software ---


class DispositionIn(BaseModel):
    canonical_name: str = Field(min_length=1)
    disposition: str = "pending"
    approved_software_id: Optional[int] = None
    notes: Optional[str] = None
    updated_by: Optional[str] = None


class DispositionRecord(DispositionIn):
    id: Optional[int] = None
    replacement_name: Optional[str] = None
    replacement_category: Optional[str] = None


class BulkDispositionRequest(BaseModel):
    mappings: List[DispositionIn]


class BulkDispositionResponse(BaseModel):
    success: bool = True
    updated: int


class DispositionLookupRequest(BaseModel):
    canonical_names: List[str] = Field(default_factory=list)


class ApprovedSoftwareIn(BaseModel):
    name: str = Field(min_length=1)
    category: Optional[str] = None
    vendor: Optional[str] = None
    notes: Optional[str] = None


class ApprovedSoftwareUpdate(ApprovedSoftwareIn):
    is_active: bool = True


class ApprovedSoftware(ApprovedSoftwareUpdate):
    id: int


# --- admin feedback and history ---


class FeedbackIn(BaseModel):
    software_name: str = Field(min_length=1)
    action_type: FeedbackAction
    reason: str = Field(min_length=1)
    suggested_category: Optional[str] = None
    suggested_canonical_name: Optional[str] = None
    suggested_deployment_type: Optional[DeploymentType] = None
    created_by: Optional[str] = None


class Feedback(FeedbackIn):
    id: int
    applied_to_rules: bool = False
    created_at: Optional[str] = None


class FeedbackResponse(BaseModel):
    success: bool = True
    feedback: Feedback


class HistoryEntry(BaseModel):
    upload_filename: str
    agency_name: Optional[str] = None
    input_count: int
    output_count: int
    excluded_count: int
    status: str = "completed"


# --- saved clients ---


class SavedClientIn(BaseModel):
    agency_name: str = Field(min_length=1)
    analysis_data: Optional[Any] = None
    source_filename: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    status: str = "in_progress"


class SavedClientUpdate(BaseModel):
    # Omitted fields keep their stored value.
    agency_name: Optional[str] = None
    analysis_data: Optional[Any] = None
    summary: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    updated_by: Optional[str] = None


class SavedClientSummary(BaseModel):
    """List view; the stored analysis payload is only returned by id."""

    id: int
    agency_name: str
    source_filename: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    status: str = "in_progress"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class SavedClient(SavedClientSummary):
    analysis_data: Optional[Any] = None


# --- export ---


class ExportRow(CamelModel):
    canonical_name: str
    category: Optional[str] = None
    deployment_type: Optional[str] = None
    disposition: Optional[str] = None
    replacement_name: Optional[str] = None
    description: Optional[str] = None
    original_count: Optional[int] = None
    total_devices: Optional[int] = None
    disposition_notes: Optional[str] = None


class ExportRequest(BaseModel):
    data: List[ExportRow] = Field(default_factory=list)
    agency: Optional[str] = None


# --- service ---


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded"] = "healthy"
    database: Literal["connected", "disconnected"] = "connected"
