"""
Calculator Session: the single active user's working state.

Holds the form as entered (raw values, not yet parsed), the appliance
selection, custom appliances, the expert-mode flag and the record store.
Every change is written through to the key-value store, so a session
rebuilt from the same store picks up where the last one left off.

This object is also the form input provider for the estimator: it turns raw
values into an EstimatorInput, with relaxed defaults for the live summary and
strict parsing for a committed calculation.
"""

import logging
import math
from typing import Optional

from pydantic import ValidationError as SchemaError

from .catalog import (
    BASE_CURRENCY,
    MAX_APPLIANCE_NOZZLES,
    MIN_APPLIANCE_NOZZLES,
    STANDARD_APPLIANCES,
    make_custom_appliance,
)
from .estimator import Estimator
from .exceptions import NotFoundError, ValidationError
from .kv_store import KeyValueStore
from .record_store import RecordStore
from .schemas import (
    ApplianceSpec,
    EstimationResult,
    EstimatorInput,
    ExpertParameters,
    FormState,
    ProjectInfo,
    SummaryPreview,
)

logger = logging.getLogger(__name__)

EXPERT_MODE_KEY = "kfss_expert_mode"
FORM_STATE_KEY = "kfss_form_state"

# Values the form is reset to
DEFAULT_FIELDS = {
    "project_name": "Commercial Kitchen Design",
    "client_name": "Restaurant Corporation",
    "project_location": "",
    "hood_length": 3.0,
    "hood_depth": 1.2,
    "plenum_sections": 2,
    "duct_sections": 1,
    "currency": BASE_CURRENCY,
    # Expert panel
    "hood_material": "stainless",
    "duct_length": 5.0,
    "nozzle_type": "standard",
    "pipe_material": "galvanized",
    "safety_factor": 10,
    "pressure_rating": 100,
    "additional_notes": "",
}

# Live summary placeholders when the text fields are blank
PREVIEW_PROJECT_NAME = "Project Name"
PREVIEW_CLIENT_NAME = "Client Name"


def parse_number(value, default: Optional[float] = None) -> Optional[float]:
    """Parse a float from form input. Blank, unparsable or non-finite gives default."""
    if value is None:
        return default
    try:
        number = float(str(value).strip())
    except (ValueError, TypeError):
        return default
    if not math.isfinite(number):
        return default
    return number


def parse_int(value, default: Optional[int] = None) -> Optional[int]:
    """Parse an integer from form input. '2.7' reads as 2."""
    number = parse_number(value)
    if number is None:
        return default
    return int(number)


def parse_text(value, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


class CalculatorSession:

    def __init__(self, kv: KeyValueStore, estimator: Estimator = None,
                 records: RecordStore = None):
        self.kv = kv
        self.estimator = estimator or Estimator()
        self.records = records or RecordStore(kv)
        self.form = FormState(fields=dict(DEFAULT_FIELDS))
        self.expert_mode = False
        self._load()

    def _load(self):
        self.records.load_persisted()

        # New ids must sort after anything already persisted
        seed = getattr(self.estimator.id_factory, "seed", None)
        if seed is not None:
            seed(self.records.max_id())

        self.expert_mode = self.kv.get(EXPERT_MODE_KEY) == "true"

        raw = self.kv.get(FORM_STATE_KEY)
        if raw:
            try:
                self.form = FormState.model_validate_json(raw)
            except SchemaError as e:
                logger.warning("Could not read persisted form state (%d errors); using defaults",
                               e.error_count())

    def _save_form(self):
        self.kv.set(FORM_STATE_KEY, self.form.model_dump_json())

    # --- Form ---

    def update_fields(self, values: dict):
        """Overwrite raw form values. Unknown field names are rejected."""
        unknown = sorted(k for k in values if k not in DEFAULT_FIELDS)
        if unknown:
            raise ValidationError(unknown, [f"Unknown form field: {k}" for k in unknown])
        fields = dict(self.form.fields)
        fields.update(values)
        self.form = self.form.model_copy(update={"fields": fields})
        self._save_form()

    def set_expert_mode(self, enabled: bool):
        self.expert_mode = bool(enabled)
        self.kv.set(EXPERT_MODE_KEY, "true" if self.expert_mode else "false")

    # --- Appliances ---

    def available_appliances(self) -> list:
        """Standard catalog followed by this session's custom appliances."""
        return list(STANDARD_APPLIANCES) + list(self.form.custom_appliances)

    def selected_appliances(self) -> list:
        selected = set(self.form.selected_ids)
        return [a for a in self.available_appliances() if a.id in selected]

    def is_selected(self, appliance_id: str) -> bool:
        return appliance_id in self.form.selected_ids

    def toggle_appliance(self, appliance_id: str) -> bool:
        """Flip selection. Returns the new selected state."""
        now_selected = not self.is_selected(appliance_id)
        self._set_selected(appliance_id, now_selected)
        return now_selected

    def select_appliance(self, appliance_id: str):
        self._set_selected(appliance_id, True)

    def deselect_appliance(self, appliance_id: str):
        self._set_selected(appliance_id, False)

    def _set_selected(self, appliance_id: str, selected: bool):
        if not any(a.id == appliance_id for a in self.available_appliances()):
            raise NotFoundError(appliance_id, kind="Appliance")
        ids = [i for i in self.form.selected_ids if i != appliance_id]
        if selected:
            ids.append(appliance_id)
        self.form = self.form.model_copy(update={"selected_ids": ids})
        self._save_form()

    def add_custom_appliance(self, name, nozzle_count=1) -> ApplianceSpec:
        """Create a custom appliance (priced per nozzle) and select it."""
        name = parse_text(name).strip()
        # Blank, unparsable or zero counts read as 1
        nozzles = parse_int(nozzle_count) or 1
        if not name:
            raise ValidationError(["custom_appliance_name"], ["Please enter appliance name"])
        if not MIN_APPLIANCE_NOZZLES <= nozzles <= MAX_APPLIANCE_NOZZLES:
            raise ValidationError(
                ["custom_nozzles"],
                [f"Please enter nozzle count between {MIN_APPLIANCE_NOZZLES}-{MAX_APPLIANCE_NOZZLES}"],
            )

        appliance = make_custom_appliance(name, nozzles)
        self.form = self.form.model_copy(update={
            "custom_appliances": list(self.form.custom_appliances) + [appliance],
            "selected_ids": list(self.form.selected_ids) + [appliance.id],
        })
        self._save_form()
        return appliance

    # --- Form input provider ---

    def form_input(self, preview: bool = False) -> EstimatorInput:
        """
        Build an EstimatorInput from the raw form.

        preview=True never fails: blank or invalid numbers take the documented
        defaults. preview=False leaves blank hood dimensions at 0 so the
        estimator's boundary check reports them. Negative section counts are
        reported in the same ValidationError as the estimator's checks.
        """
        f = self.form.fields

        if preview:
            name = parse_text(f.get("project_name")) or PREVIEW_PROJECT_NAME
            client = parse_text(f.get("client_name")) or PREVIEW_CLIENT_NAME
            hood_length = parse_number(f.get("hood_length"), 0.0)
            hood_depth = parse_number(f.get("hood_depth"), 0.0)
            if hood_length <= 0:
                hood_length = DEFAULT_FIELDS["hood_length"]
            if hood_depth <= 0:
                hood_depth = DEFAULT_FIELDS["hood_depth"]
            plenum = parse_int(f.get("plenum_sections"))
            duct = parse_int(f.get("duct_sections"))
            if plenum is None or plenum < 0:
                plenum = DEFAULT_FIELDS["plenum_sections"]
            if duct is None or duct < 0:
                duct = DEFAULT_FIELDS["duct_sections"]
            negative = []
        else:
            name = parse_text(f.get("project_name"))
            client = parse_text(f.get("client_name"))
            hood_length = parse_number(f.get("hood_length"), 0.0)
            hood_depth = parse_number(f.get("hood_depth"), 0.0)
            plenum = parse_int(f.get("plenum_sections"), 0)
            duct = parse_int(f.get("duct_sections"), 0)
            negative = [k for k, v in (("plenum_sections", plenum), ("duct_sections", duct)) if v < 0]
            plenum = max(plenum, 0)
            duct = max(duct, 0)

        currency = parse_text(f.get("currency")).strip().upper() or BASE_CURRENCY

        inp = EstimatorInput(
            project=ProjectInfo(
                name=name,
                client=client,
                location=parse_text(f.get("project_location")),
            ),
            hood_length=hood_length,
            hood_depth=hood_depth,
            plenum_sections=plenum,
            duct_sections=duct,
            selected_appliances=self.selected_appliances(),
            currency=currency,
            expert_mode=self.expert_mode,
            expert=self._expert_parameters(),
        )

        if negative:
            # Report together with the name and hood checks
            fields, messages = [], []
            try:
                self.estimator.validate(inp)
            except ValidationError as e:
                fields, messages = e.fields, e.messages
            raise ValidationError(
                fields + negative,
                messages + [f"{k} cannot be negative" for k in negative],
            )
        return inp

    def _expert_parameters(self) -> ExpertParameters:
        f = self.form.fields
        duct_length = parse_number(f.get("duct_length"), DEFAULT_FIELDS["duct_length"])
        if duct_length < 0:
            duct_length = DEFAULT_FIELDS["duct_length"]
        safety = parse_number(f.get("safety_factor"), DEFAULT_FIELDS["safety_factor"])
        if safety < 0:
            safety = DEFAULT_FIELDS["safety_factor"]
        return ExpertParameters(
            hood_material=parse_text(f.get("hood_material")) or DEFAULT_FIELDS["hood_material"],
            duct_length=duct_length,
            nozzle_type=parse_text(f.get("nozzle_type")) or DEFAULT_FIELDS["nozzle_type"],
            pipe_material=parse_text(f.get("pipe_material")) or DEFAULT_FIELDS["pipe_material"],
            safety_factor_percent=safety,
            pressure_rating=parse_int(f.get("pressure_rating"), DEFAULT_FIELDS["pressure_rating"]),
            notes=parse_text(f.get("additional_notes")),
        )

    # --- Operations ---

    def summary(self) -> SummaryPreview:
        """Live summary. Recomputed on demand, never persisted."""
        return self.estimator.preview(self.form_input(preview=True))

    def perform_calculation(self) -> EstimationResult:
        """Validate, compute, then record as both newest history entry and last calculation."""
        result = self.estimator.compute(self.form_input())
        self.records.append(result)
        logger.info(
            "Calculation %s committed: %s / %s, %d nozzles, %d cylinders, total %.2f %s",
            result.id, result.project.name, result.project.client,
            result.nozzles.total, result.cylinders_required,
            result.total_cost, result.project.currency,
        )
        return result

    def load_calculation(self, record_id: int) -> EstimationResult:
        """Restore a past calculation into the form and make it the last calculation."""
        record = self.records.select(record_id)
        cfg = record.configuration

        fields = {
            "project_name": record.project.name,
            "client_name": record.project.client,
            "project_location": record.project.location,
            "hood_length": cfg.hood_length,
            "hood_depth": cfg.hood_depth,
            "plenum_sections": cfg.plenum_sections,
            "duct_sections": cfg.duct_sections,
            "currency": record.project.currency,
            "hood_material": cfg.expert.hood_material,
            "duct_length": cfg.expert.duct_length,
            "nozzle_type": cfg.expert.nozzle_type,
            "pipe_material": cfg.expert.pipe_material,
            "safety_factor": cfg.expert.safety_factor_percent,
            "pressure_rating": cfg.expert.pressure_rating,
            "additional_notes": cfg.expert.notes,
        }

        known = {a.id for a in self.available_appliances()}
        customs = list(self.form.custom_appliances)
        customs.extend(a for a in cfg.selected_appliances if a.custom and a.id not in known)

        self.form = FormState(
            fields=fields,
            selected_ids=[a.id for a in cfg.selected_appliances],
            custom_appliances=customs,
        )
        self._save_form()
        logger.info("Loaded calculation %s: %s", record.id, record.project.name)
        return record

    def reset(self):
        """
        Clear history and the last calculation, restore default form values,
        deselect everything and drop custom appliances. Expert mode is kept.
        """
        self.records.clear()
        self.form = FormState(fields=dict(DEFAULT_FIELDS))
        self._save_form()
        logger.info("Calculator reset")
