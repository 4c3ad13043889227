from partnerhub.db.models.partner import Partner
from partnerhub.db.models.project import Project, project_partners
from partnerhub.db.models.report import GeneratedReport, ReportConfig
from partnerhub.db.models.task import Task
from partnerhub.db.models.user import User

__all__ = [
    "GeneratedReport",
    "Partner",
    "Project",
    "ReportConfig",
    "Task",
    "User",
    "project_partners",
]
