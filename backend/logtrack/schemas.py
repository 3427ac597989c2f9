from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime
from enum import Enum

class LogFormat(str, Enum):
    """Input formats understood by the format detector"""
    APACHE = "apache"
    NGINX = "nginx"  # accepted as a hint only, parsed as apache
    JSON = "json"
    W3C = "w3c"
    SYSLOG = "syslog"
    IIS = "iis"
    UNKNOWN = "unknown"

class RuleTag(str, Enum):
    HIGH_REQUEST_VOLUME = "high_request_volume"
    MULTIPLE_FAILED_ATTEMPTS = "multiple_failed_attempts"
    UNUSUAL_TIME_ACTIVITY = "unusual_time_activity"
    SUSPICIOUS_RESOURCE_ACCESS = "suspicious_resource_access"
    LARGE_DATA_TRANSFER = "large_data_transfer"
    RAPID_SEQUENTIAL_REQUESTS = "rapid_sequential_requests"

RULE_TITLES = {
    RuleTag.HIGH_REQUEST_VOLUME: "High Request Volume",
    RuleTag.MULTIPLE_FAILED_ATTEMPTS: "Multiple Failed Attempts",
    RuleTag.UNUSUAL_TIME_ACTIVITY: "Unusual Time Activity",
    RuleTag.SUSPICIOUS_RESOURCE_ACCESS: "Suspicious Resource Access",
    RuleTag.LARGE_DATA_TRANSFER: "Large Data Transfer",
    RuleTag.RAPID_SEQUENTIAL_REQUESTS: "Rapid Sequential Requests",
}

class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"

# Unified event model produced by every extractor
class CanonicalEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    raw_timestamp: str
    method: str = "LOG"
    resource: str = "/"
    status_code: int = 200
    size_bytes: int = 0
    instant: datetime
    hour_of_day: int = Field(ge=0, le=23)
    line_number: int = Field(ge=1)
    timestamp_inferred: bool = False

# Anomaly records: one concrete payload shape per rule
class AnomalyBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    explanation: str
    confidence: int = Field(ge=0, le=95)
    severity: Severity

    @property
    def title(self) -> str:
        return RULE_TITLES[RuleTag(self.type)]

class HighRequestVolumeAnomaly(AnomalyBase):
    type: Literal["high_request_volume"] = "high_request_volume"
    source_id: str
    count: int
    expected_count: int

class FailedAttemptsAnomaly(AnomalyBase):
    type: Literal["multiple_failed_attempts"] = "multiple_failed_attempts"
    source_id: str
    count: int
    resources: List[str] = []

class UnusualTimeAnomaly(AnomalyBase):
    type: Literal["unusual_time_activity"] = "unusual_time_activity"
    hour_of_day: int = Field(ge=0, le=23)
    count: int
    source_id: Optional[str] = None

class SuspiciousResourceAnomaly(AnomalyBase):
    type: Literal["suspicious_resource_access"] = "suspicious_resource_access"
    source_id: str
    matched_pattern: str
    count: int
    resources: List[str] = []

class LargeTransferAnomaly(AnomalyBase):
    type: Literal["large_data_transfer"] = "large_data_transfer"
    source_id: str
    resource: str
    megabytes: float
    line_number: int

class RapidRequestsAnomaly(AnomalyBase):
    type: Literal["rapid_sequential_requests"] = "rapid_sequential_requests"
    source_id: str
    count: int
    window_seconds: float

AnomalyRecord = Annotated[
    Union[
        HighRequestVolumeAnomaly,
        FailedAttemptsAnomaly,
        UnusualTimeAnomaly,
        SuspiciousResourceAnomaly,
        LargeTransferAnomaly,
        RapidRequestsAnomaly,
    ],
    Field(discriminator="type"),
]

class AnalysisSummary(BaseModel):
    total_events: int
    unique_sources: int
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    anomaly_count: int
    critical_count: int
    warning_count: int

class AnalysisResult(BaseModel):
    detected_format: LogFormat
    total_lines: int
    skipped_lines: int
    # Set when only a sample of the input was structured by the external parser
    sampled_lines: Optional[int] = None
    events: List[CanonicalEvent]
    anomalies: List[AnomalyRecord]
    summary: AnalysisSummary

# API Request/Response Models
class AnalyzeRequest(BaseModel):
    content: str
    file_name: Optional[str] = None
    format_hint: Optional[LogFormat] = None
    use_external_parser: bool = True

class UploadResponse(BaseModel):
    filename: str
    log_type: LogFormat
    events_ingested: int
    anomalies_found: int
    message: str
    result: AnalysisResult

class AISummaryRequest(BaseModel):
    summary: AnalysisSummary
    anomalies: List[AnomalyRecord] = []

class AISummaryResponse(BaseModel):
    summary: str
