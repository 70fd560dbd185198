"""
Estimator: bill of quantities and cost for a wet chemical kitchen system.

Pure math. Nozzles from hood sections and appliances, cylinders from
nozzles, piping from nozzles, then quantity × price, subtotal × safety
factor, total × exchange rate.

Input: EstimatorInput
Output: EstimationResult (full calculation) or SummaryPreview (live summary)
"""

import logging
import math
import threading
import time
from datetime import datetime, timezone

from .catalog import FIXED_COSTS, PRICING, exchange_rate
from .exceptions import ValidationError
from .models import CostCategory
from .schemas import (
    EstimationResult,
    EstimatorInput,
    NozzleBreakdown,
    ProjectSummary,
    SummaryPreview,
)

logger = logging.getLogger(__name__)


class MonotonicIdGenerator:
    """
    Creation-time ids (epoch milliseconds) that never repeat.

    Two calls inside the same millisecond, or a clock that steps backwards,
    get last_id + 1 instead of a duplicate.
    """

    def __init__(self, floor: int = 0, clock=time.time):
        self._last = floor
        self._clock = clock
        self._lock = threading.Lock()

    def seed(self, floor: int):
        """Raise the floor, e.g. to the highest id already persisted."""
        with self._lock:
            self._last = max(self._last, floor)

    def __call__(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Estimator:
    """
    Converts hood geometry, duct/plenum sections and selected appliances
    into nozzle, cylinder, agent and piping quantities plus an itemized cost.
    """

    NOZZLES_PER_CYLINDER = 6
    AGENT_KG_PER_CYLINDER = 5.7
    PIPING_PER_NOZZLE_M = 2.0
    MAIN_RUN_M = 5.0

    def __init__(self, id_factory=None, clock=None):
        self.id_factory = id_factory or MonotonicIdGenerator()
        self.clock = clock or _utcnow

    def validate(self, inp: EstimatorInput):
        """
        Boundary check before a calculation commits.
        Raises ValidationError naming every offending field.
        """
        fields = []
        messages = []

        if not inp.project.name.strip():
            fields.append("project_name")
            messages.append("Project name is required")
        if not inp.project.client.strip():
            fields.append("client_name")
            messages.append("Client name is required")
        if not inp.hood_length > 0:
            fields.append("hood_length")
            messages.append("Hood length must be greater than 0")
        if not inp.hood_depth > 0:
            fields.append("hood_depth")
            messages.append("Hood depth must be greater than 0")

        if fields:
            raise ValidationError(fields, messages)

    def compute(self, inp: EstimatorInput) -> EstimationResult:
        """Validate, then build the full EstimationResult for one calculation."""
        self.validate(inp)

        hood_area = inp.hood_length * inp.hood_depth
        nozzles = self.count_nozzles(inp)
        cylinders = self.cylinders_for(nozzles.total)
        agent_weight = round(cylinders * self.AGENT_KG_PER_CYLINDER, 2)
        piping_length = self.piping_length(nozzles.total, inp)

        base = self.base_subtotals(nozzles.total, cylinders, piping_length, inp)
        subtotals = self.apply_safety_factor(base, inp.expert.safety_factor_percent)

        rate = exchange_rate(inp.currency)
        total_base = round(sum(subtotals.values()), 2)
        total_cost = round(total_base * rate, 2)
        logger.debug("Estimate: %d nozzles, %d cylinders, %.2f m piping, base %.2f x %.4f",
                     nozzles.total, cylinders, piping_length, total_base, rate)

        return EstimationResult(
            id=self.id_factory(),
            timestamp=self.clock(),
            project=ProjectSummary(
                name=inp.project.name,
                client=inp.project.client,
                location=inp.project.location,
                currency=inp.currency,
            ),
            configuration=inp.model_copy(deep=True),
            hood_area_m2=round(hood_area, 4),
            nozzles=nozzles,
            cylinders_required=cylinders,
            cylinder_size_kg=self.cylinder_size_kg(cylinders),
            agent_weight_kg=agent_weight,
            piping_length_m=piping_length,
            subtotals=subtotals,
            total_cost=total_cost,
            exchange_rate=rate,
        )

    def preview(self, inp: EstimatorInput) -> SummaryPreview:
        """
        Advisory summary for the live display. No validation, no safety
        factor, no id. Callers pass already-defaulted input.
        """
        nozzles = self.count_nozzles(inp)
        cylinders = self.cylinders_for(nozzles.total)
        piping_length = self.piping_length(nozzles.total, inp)
        base = self.base_subtotals(nozzles.total, cylinders, piping_length, inp)

        base_total = round(sum(base.values()), 2)
        rate = exchange_rate(inp.currency)

        return SummaryPreview(
            project_name=inp.project.name,
            client_name=inp.project.client,
            hood_area_m2=round(inp.hood_length * inp.hood_depth, 4),
            nozzles=nozzles,
            cylinders_required=cylinders,
            agent_weight_kg=round(cylinders * self.AGENT_KG_PER_CYLINDER, 2),
            piping_length_m=piping_length,
            base_total=base_total,
            currency=inp.currency,
            exchange_rate=rate,
            total_cost=round(base_total * rate, 2),
        )

    # --- Quantities ---

    def count_nozzles(self, inp: EstimatorInput) -> NozzleBreakdown:
        """One nozzle per plenum section, per duct opening, plus per-appliance nozzles."""
        appliance_nozzles = sum(a.nozzle_count for a in inp.selected_appliances)
        return NozzleBreakdown(
            plenum=inp.plenum_sections,
            duct=inp.duct_sections,
            appliances=appliance_nozzles,
            total=inp.plenum_sections + inp.duct_sections + appliance_nozzles,
        )

    def cylinders_for(self, total_nozzles: int) -> int:
        """Each cylinder services at most 6 nozzles."""
        return math.ceil(total_nozzles / self.NOZZLES_PER_CYLINDER)

    def cylinder_size_kg(self, cylinders: int) -> int:
        """More than one cylinder means every cylinder is the 10 kg unit."""
        return 10 if cylinders > 1 else 5

    def cylinder_unit_price(self, cylinders: int) -> float:
        if cylinders > 1:
            return PRICING["cylinder_10kg"]
        return PRICING["cylinder_5kg"]

    def piping_length(self, total_nozzles: int, inp: EstimatorInput) -> float:
        """2 m per nozzle branch + 5 m main run + expert duct run (expert mode only)."""
        length = total_nozzles * self.PIPING_PER_NOZZLE_M + self.MAIN_RUN_M
        if inp.expert_mode:
            length += inp.expert.duct_length
        return round(length, 2)

    # --- Costs ---

    def base_subtotals(self, total_nozzles: int, cylinders: int,
                       piping_length: float, inp: EstimatorInput) -> dict:
        """Per-category cost before safety factor, in CostCategory order."""
        subtotals = {
            CostCategory.NOZZLES: total_nozzles * PRICING["nozzle"],
            CostCategory.CYLINDERS: cylinders * self.cylinder_unit_price(cylinders),
            CostCategory.PIPING: piping_length * PRICING["piping_per_meter"],
        }
        subtotals.update(FIXED_COSTS)
        subtotals[CostCategory.APPLIANCES] = sum(a.price for a in inp.selected_appliances)
        return {
            category: round(subtotals[category], 2)
            for category in CostCategory
        }

    def apply_safety_factor(self, subtotals: dict, safety_factor_percent: float) -> dict:
        """Scale every category uniformly, fixed costs and appliances included."""
        multiplier = 1 + safety_factor_percent / 100.0
        return {
            category: round(amount * multiplier, 2)
            for category, amount in subtotals.items()
        }
