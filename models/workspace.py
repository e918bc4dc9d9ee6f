from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from core.db.base import Base
import enum

class AccountType(str, enum.Enum):
    individual = "individual"
    team = "team"

class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, index=True)
    # One workspace per owner; the constraint backs the save-time upsert.
    owner_user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    # Persisted as given, validation happens on the request schema.
    account_type = Column(String(50), nullable=True)
    name = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)
    role = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    owner = relationship("User", back_populates="workspace")
    collaborators = relationship(
        "Collaborator",
        back_populates="workspace",
        order_by="Collaborator.id",
        passive_deletes=True
    )
