from sqlalchemy import Column, DateTime, String, Text
from datetime import datetime
from .database import Base
import enum


class CostCategory(str, enum.Enum):
    """Closed, ordered set of cost buckets. Declaration order is display order."""
    NOZZLES = "nozzles"
    CYLINDERS = "cylinders"
    PIPING = "piping"
    HOOD_AGENT_TANK = "hood_agent_tank"
    MANUAL_RELEASE = "manual_release"
    INSTALLATION_LABOR = "installation_labor"
    COMMISSIONING = "commissioning"
    APPLIANCES = "appliances"


class StoredValue(Base):
    """Durable key-value slot - last calculation, recent list, expert-mode flag, form state."""
    __tablename__ = "stored_values"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
