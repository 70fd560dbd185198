from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from .models import CostCategory


class ApplianceSpec(BaseModel):
    id: str
    name: str
    nozzle_count: int = Field(ge=1, le=5)
    price: float = Field(ge=0)
    custom: bool = False


class ProjectInfo(BaseModel):
    name: str = ""
    client: str = ""
    location: str = ""


class ExpertParameters(BaseModel):
    hood_material: str = "stainless"
    duct_length: float = Field(5.0, ge=0)
    nozzle_type: str = "standard"
    pipe_material: str = "galvanized"
    safety_factor_percent: float = Field(10.0, ge=0)
    pressure_rating: int = 100
    notes: str = ""


class EstimatorInput(BaseModel):
    project: ProjectInfo = Field(default_factory=ProjectInfo)
    hood_length: float = 3.0
    hood_depth: float = 1.2
    plenum_sections: int = Field(2, ge=0)
    duct_sections: int = Field(1, ge=0)
    selected_appliances: List[ApplianceSpec] = []
    currency: str = "USD"
    expert_mode: bool = False
    expert: ExpertParameters = Field(default_factory=ExpertParameters)


class NozzleBreakdown(BaseModel):
    plenum: int
    duct: int
    appliances: int
    total: int


class ProjectSummary(BaseModel):
    name: str
    client: str
    location: str = ""
    currency: str = "USD"


class EstimationResult(BaseModel):
    """
    One committed calculation. Subtotals are stored in the base currency with
    the safety factor applied; total_cost is already converted with
    exchange_rate.
    """
    id: int
    timestamp: datetime
    project: ProjectSummary
    configuration: EstimatorInput
    hood_area_m2: float
    nozzles: NozzleBreakdown
    cylinders_required: int
    cylinder_size_kg: int
    agent_weight_kg: float
    piping_length_m: float
    subtotals: Dict[CostCategory, float]
    total_cost: float
    exchange_rate: float

    @property
    def safety_factor_percent(self) -> float:
        return self.configuration.expert.safety_factor_percent

    def ordered_subtotals(self) -> list:
        """[(category, amount), ...] in CostCategory declaration order."""
        return [(c, self.subtotals[c]) for c in CostCategory if c in self.subtotals]


class SummaryPreview(BaseModel):
    """Live, advisory summary - no safety factor, never persisted."""
    project_name: str
    client_name: str
    hood_area_m2: float
    nozzles: NozzleBreakdown
    cylinders_required: int
    agent_weight_kg: float
    piping_length_m: float
    base_total: float
    currency: str
    exchange_rate: float
    total_cost: float


# --- Session state ---

class FormState(BaseModel):
    """Raw form values as entered, before any parsing or defaulting."""
    fields: Dict[str, Any] = {}
    selected_ids: List[str] = []
    custom_appliances: List[ApplianceSpec] = []


# --- Request bodies ---

class FormUpdate(BaseModel):
    fields: Dict[str, Any]


class CustomApplianceCreate(BaseModel):
    name: str
    nozzle_count: Optional[Any] = 1


class ExpertModeUpdate(BaseModel):
    enabled: bool
