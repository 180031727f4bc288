from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Route = Literal["PO", "IV", "IM", "TOPICAL", "SQ"]
PackageStatus = Literal["active", "inactive"]
NdcStatus = Literal["active", "inactive", "unknown"]
PipelineStep = Literal["normalize", "catalog", "quantity", "optimize"]

OptimizationErrorCode = Literal[
    "INVALID_QUANTITY",
    "NO_NDC_DATA",
    "NO_ACTIVE_NDCS",
    "NO_VALID_ACTIVE_NDCS",
    "UNEXPECTED_ERROR",
]

UNKNOWN_PACKAGE_DESCRIPTION = "Package description unavailable"

# ---------------------------
# Dosage parsing / quantity
# ---------------------------

class DosageInstruction(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., gt=0)
    unit: str = Field(..., description="tablet, capsule, pill, ml, mg, g, dose")
    frequency: int = Field(..., ge=1, description="occurrences per day")
    timing: Optional[str] = None
    route: Optional[Route] = None

class ParsedInstruction(BaseModel):
    original_text: str
    dosage_instructions: List[DosageInstruction] = Field(default_factory=list)
    total_daily_dose: float = 0
    daily_frequency: int = 1
    is_as_needed: bool = False

class QuantityResult(BaseModel):
    succeeded: bool
    total_quantity: int = 0
    unit: str = ""
    parsed: ParsedInstruction
    days_supply: float
    error_message: Optional[str] = None

# ---------------------------
# Package catalog / optimization
# ---------------------------

class PackageInfo(BaseModel):
    product_code: str = ""
    package_code: str = ""
    description: str = ""
    size: Optional[float] = None  # units per package; entries without one are not dispensable
    status: PackageStatus = "active"
    is_sample: bool = False
    marketing_start_date: Optional[str] = None
    marketing_end_date: Optional[str] = None

class PackageCandidate(BaseModel):
    package_code: str
    package_size: float
    description: str = UNKNOWN_PACKAGE_DESCRIPTION
    status: PackageStatus
    quantity_needed: float
    packages_required: int
    efficiency: float  # lower is better (less waste)

class OptimizationResult(BaseModel):
    succeeded: bool
    candidates: List[PackageCandidate] = Field(default_factory=list)
    optimal_combination: List[PackageCandidate] = Field(default_factory=list)
    total_quantity: float = 0
    total_packages: int = 0
    waste: float = 0
    error_code: Optional[OptimizationErrorCode] = None
    error_message: Optional[str] = None

# ---------------------------
# Upstream collaborators
# ---------------------------

class UpstreamError(BaseModel):
    code: str
    message: str
    details: Optional[str] = None

class DrugNormalizationResult(BaseModel):
    succeeded: bool
    rxcui: Optional[str] = None
    drug_name: Optional[str] = None
    error: Optional[UpstreamError] = None

class NdcStatusResult(BaseModel):
    rxcui: str
    ndc: str
    status: NdcStatus

class CatalogResult(BaseModel):
    succeeded: bool
    rxcui: Optional[str] = None
    packages: List[PackageInfo] = Field(default_factory=list)
    error: Optional[UpstreamError] = None

# ---------------------------
# Pipeline / API
# ---------------------------

class DispensePlan(BaseModel):
    succeeded: bool
    failed_step: Optional[PipelineStep] = None
    drug: Optional[DrugNormalizationResult] = None
    catalog_size: int = 0
    quantity: Optional[QuantityResult] = None
    optimization: Optional[OptimizationResult] = None
    error_message: Optional[str] = None
    audit: List[Dict[str, Any]] = Field(default_factory=list)

class ParseRequest(BaseModel):
    sig: str

class QuantityRequest(BaseModel):
    sig: str
    days_supply: float

class OptimizeRequest(BaseModel):
    quantity_needed: float
    packages: List[PackageInfo] = Field(default_factory=list)

class DispenseRequest(BaseModel):
    drug: str = Field(..., description="Drug name or NDC")
    sig: str
    days_supply: float
