import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from partnerhub.common.clock import ensure_utc
from partnerhub.common.enums import (
    PartnerStatus,
    ProjectStatus,
    RiskLevel,
    TaskPriority,
    TaskStatus,
    TaskType,
)

# ---------- Read-only snapshots ----------


class ProjectSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    name: str
    status: ProjectStatus
    progress: int = Field(0, ge=0, le=100)
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = Field(None, ge=0)
    actual_cost: float | None = Field(None, ge=0)
    organization_id: uuid.UUID | None = None
    partner_ids: tuple[uuid.UUID, ...] = ()
    updated_at: datetime | None = None

    @field_validator("updated_at")
    @classmethod
    def _utc_updated_at(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None


class TaskSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    title: str = ""
    assignee_id: uuid.UUID | None = None
    partner_id: uuid.UUID | None = None
    status: TaskStatus
    priority: TaskPriority = TaskPriority.MEDIUM
    type: TaskType = TaskType.TASK
    due_date: date | None = None
    completed_at: datetime | None = None

    @field_validator("completed_at")
    @classmethod
    def _utc_completed_at(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None


class PartnerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    status: PartnerStatus
    rating: float = 0.0
    total_projects: int = 0
    completed_projects: int = 0
    is_deleted: bool = False


class UserSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID
    full_name: str
    organization_id: uuid.UUID | None = None


# ---------- Metrics ----------


class OverviewStats(BaseModel):
    total_projects: int
    active_projects: int
    completed_projects: int
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    overdue_tasks: int
    total_partners: int
    active_partners: int


class TaskDistribution(BaseModel):
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_type: dict[str, int]


class ProjectTaskSummary(BaseModel):
    id: uuid.UUID
    name: str
    status: ProjectStatus
    progress: int
    end_date: date | None
    tasks_count: int
    completed_tasks_count: int
    overdue_tasks_count: int


class PartnerPerformance(BaseModel):
    partner_id: uuid.UUID
    partner_name: str
    email: str
    rating: float
    total_projects: int
    completed_projects: int
    active_projects: int
    active_tasks: int
    completed_tasks: int
    tasks_total: int
    on_time_delivery_rate: int


class DeadlineItem(BaseModel):
    type: str  # "project" or "task"
    id: uuid.UUID
    name: str
    due_date: date
    days_remaining: int
    project_id: uuid.UUID | None = None
    project_name: str | None = None
    assignee_id: uuid.UUID | None = None
    assignee_name: str | None = None
    priority: TaskPriority | None = None


class OverdueItems(BaseModel):
    projects: list[DeadlineItem]
    tasks: list[DeadlineItem]


class ProjectBudget(BaseModel):
    project_id: uuid.UUID
    project_name: str
    budget: float
    spent: float
    utilization_rate: int


class BudgetOverview(BaseModel):
    total_budget: float
    total_spent: float
    utilization_rate: int
    project_budgets: list[ProjectBudget]


# ---------- Health score ----------


class HealthScoreDetails(BaseModel):
    total_tasks: int
    completed_tasks: int
    on_time_completed_tasks: int
    budget: float
    actual_cost: float


class HealthScoreBreakdown(BaseModel):
    project_id: uuid.UUID
    on_time_rate: float
    completion_rate: float
    budget_health: float
    total_score: int
    details: HealthScoreDetails


class ProjectHealthScore(BaseModel):
    project_id: uuid.UUID
    project_name: str
    health_score: int
    breakdown: HealthScoreBreakdown


class ScoreDistribution(BaseModel):
    excellent: int = 0
    good: int = 0
    fair: int = 0
    poor: int = 0


class HealthScoreStats(BaseModel):
    average_score: float = 0
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    projects_at_risk: int = 0
    total_projects: int = 0
    average_on_time_rate: float = 0
    average_completion_rate: float = 0
    average_budget_health: float = 0


# ---------- Risk ----------


class TimelineCounts(BaseModel):
    on_track: int = 0
    at_risk: int = 0
    delayed: int = 0
    excluded: int = 0


class RiskAssessment(BaseModel):
    project_id: uuid.UUID
    name: str
    status: ProjectStatus
    progress: int
    risk_level: RiskLevel
    days_remaining: int | None
    overdue_task_count: int
    reasons: list[str] = Field(min_length=1)


# ---------- Dashboard views ----------


class ProjectProgress(BaseModel):
    by_status: dict[str, int]
    average_progress: float
    on_track: int
    at_risk: int
    delayed: int
    health_score_stats: HealthScoreStats


class ManagerProjectSummary(BaseModel):
    total: int
    active: int
    completed: int
    delayed: int
    on_track: int
    at_risk: int


class ManagerTaskSummary(BaseModel):
    total: int
    completed: int
    in_progress: int
    pending: int
    overdue: int
    completion_rate: int


class ManagerDashboard(BaseModel):
    period: str
    period_start: date
    period_end: date
    project_summary: ManagerProjectSummary
    task_summary: ManagerTaskSummary
    partner_performance: list[PartnerPerformance]
    projects_at_risk: list[RiskAssessment]
    budget_overview: BudgetOverview
    upcoming_deadlines: list[DeadlineItem]
