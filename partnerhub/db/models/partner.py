import uuid

from sqlalchemy import Float, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partnerhub.common.enums import PartnerStatus
from partnerhub.db.base import BaseModel


class Partner(BaseModel):
    __tablename__ = "partners"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    status: Mapped[PartnerStatus] = mapped_column(
        String(20), nullable=False, default=PartnerStatus.ACTIVE
    )
    rating: Mapped[float] = mapped_column(Float, default=0.0)
    total_projects: Mapped[int] = mapped_column(Integer, default=0)
    completed_projects: Mapped[int] = mapped_column(Integer, default=0)
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True, index=True
    )

    # Relationships
    projects = relationship("Project", secondary="project_partners", back_populates="partners")
