from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TextStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    font_size: int
    color: str
    font_family: str
    font_weight: str = "normal"


class Typography(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: TextStyle
    page_number: TextStyle


class AssetPaths(BaseModel):
    root: str = "."
    template: str
    title_font: str
    page_number_font: str


class LayoutSettings(BaseModel):
    content_offset: int = 34
    typography: Typography


class OutputSettings(BaseModel):
    dir: str = "output"
    filename: str = "final_document.pdf"


class JobSettings(BaseModel):
    allow_duplicate_ordinals: bool = False
    max_workers: int = 2


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3838
    api_key_file: str = ".api-key"


class PaginatorSettings(BaseModel):
    assets: AssetPaths
    layout: LayoutSettings
    output: OutputSettings = OutputSettings()
    jobs: JobSettings = JobSettings()
    server: ServerSettings = ServerSettings()


class PageProgress(BaseModel):
    current: int
    total: int
    page: int


class JobEvent(BaseModel):
    timestamp: datetime
    message: str


class JobSummary(BaseModel):
    id: str
    label: str
    title: str
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    page_count: int
    progress: Optional[PageProgress] = None
    output_path: Optional[str] = None
    pdf_available: bool = False


class JobDetail(JobSummary):
    submitted_overrides: Dict[str, Any]
    events: List[JobEvent]
    error: Optional[str] = None


class PageFile(BaseModel):
    name: str
    data: str


class ProcessRequest(BaseModel):
    title: str = ""
    files: List[PageFile] = Field(default_factory=list)
    overrides: Dict[str, Any] = Field(default_factory=dict)


class ProcessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: str
    message: Optional[str] = None
    saved_path: Optional[str] = Field(default=None, alias="savedPath")
    pdf_data: Optional[str] = Field(default=None, alias="pdfData")


class ConfigMetadata(BaseModel):
    defaults: Dict[str, Any]
    overridable: Dict[str, Optional[List[str]]]
    notes: Dict[str, str]


class HealthStatus(BaseModel):
    status: str
    version: str
    capabilities: List[str]
