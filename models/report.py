# models/report.py

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from models.enums import ExportFormat


class ReportRequest(BaseModel):
    report_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None
    client: Optional[str] = None
    team_leader_ids: List[str] = Field(default_factory=list)
    action_type: Optional[str] = None
    threshold: Optional[float] = None


class ReportExportRequest(ReportRequest):
    format: ExportFormat = ExportFormat.csv
