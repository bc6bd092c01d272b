"""
WorkForce - Onboarding Service

The onboarding wizard as an explicit state machine: a pure reducer over
tagged actions (update / next / prev / submit), per-step validity rules,
and a service that persists the wizard draft and performs the single
submission write that creates the organization.
"""

import logging
import re
import uuid
from typing import Any, Dict, List

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.onboarding import OnboardingDraft
from app.models.organization import Organization
from app.models.tier_enums import ProfileRole, Tier
from app.models.user import Profile
from app.schemas.onboarding import (
    NO_DOCUMENT_STORAGE,
    NextAction,
    OnboardingAction,
    OnboardingRecord,
    OnboardingStateResponse,
    OnboardingStepInfo,
    PrevAction,
    SubmitAction,
    UpdateAction,
    WizardState,
)
from app.utils.error_handling import (
    BusinessRuleException,
    ConflictException,
    ValidationException,
)

logger = logging.getLogger(__name__)


TOTAL_STEPS = 13
REVIEW_STEP = TOTAL_STEPS
SUBMIT_ERROR_MESSAGE = "Failed to complete setup. Please try again."
COMPLETION_REDIRECT = "/dashboard"

STEP_TITLES: Dict[int, str] = {
    1: "Business Basics",
    2: "Team & Staffing",
    3: "Scheduling Needs",
    4: "Client Management",
    5: "Services & Offerings",
    6: "Digital Vault & Compliance",
    7: "Operations & Logistics",
    8: "Payroll & Financials",
    9: "Communication",
    10: "App Customization",
    11: "Technology & Priorities",
    12: "Implementation",
    13: "Review",
}

# Answers that must be non-empty before the step can be left forwards
STEP_REQUIREMENTS: Dict[int, List[str]] = {
    1: ["business_name", "industry", "years_in_business", "address", "city", "state", "zip", "country"],
    2: ["employee_count", "expected_growth", "roles"],
    3: ["scheduling_method", "advance_scheduling", "schedule_change_frequency"],
    4: ["client_count", "crm_system"],
    5: ["service_count", "certification_required"],
    6: ["document_storage_needs", "compliance_tracking"],
    7: ["inventory_tracking", "supply_ordering"],
    8: ["payroll_method", "tax_filing_help"],
    9: ["customer_messaging"],
    10: ["brand_importance", "whitelabel"],
    11: ["tech_savviness", "field_access"],
    12: ["start_date", "support_level"],
    13: [],
}

# Roles are meaningless on the free plan
ROLE_EXEMPT_TIERS = frozenset({"free"})


# =============================================================================
# RECORD HELPERS
# =============================================================================

def _field_names_by_key() -> Dict[str, str]:
    keys: Dict[str, str] = {}
    for name, info in OnboardingRecord.model_fields.items():
        keys[name] = name
        if info.alias:
            keys[info.alias] = name
    return keys


_FIELD_KEYS = _field_names_by_key()


def normalize_partial(partial: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase or snake_case keys to field names, dropping unknown keys."""
    return {
        _FIELD_KEYS[key]: value
        for key, value in partial.items()
        if key in _FIELD_KEYS
    }


def merge_record(record: OnboardingRecord, partial: Dict[str, Any]) -> OnboardingRecord:
    """
    Shallow merge: each supplied field replaces the current value wholesale.

    Raises:
        ValidationException: If the merged record is not a valid record
    """
    merged = record.model_dump()
    merged.update(normalize_partial(partial))
    try:
        return OnboardingRecord.model_validate(merged)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationException(
            message=first.get("msg", "Invalid onboarding answer"),
            field=field,
            details={"errors": e.errors(include_url=False, include_context=False)},
        )


def toggle_option(current: List[str], option: str) -> List[str]:
    """Add ``option`` if absent, remove it if present."""
    if option in current:
        return [value for value in current if value != option]
    return [*current, option]


def toggle_storage_need(current: List[str], option: str) -> List[str]:
    """
    Toggle a document-storage answer, keeping "no storage needs" exclusive.

    Choosing "none" clears every other need; choosing a need clears "none".
    """
    toggled = toggle_option(current, option)
    if option not in toggled:
        return toggled
    if option == NO_DOCUMENT_STORAGE:
        return [NO_DOCUMENT_STORAGE]
    return [value for value in toggled if value != NO_DOCUMENT_STORAGE]


def _is_answered(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict)):
        return len(value) > 0
    return True


def is_step_valid(step: int, record: OnboardingRecord) -> bool:
    """Whether every required answer for ``step`` is filled in."""
    for field_name in STEP_REQUIREMENTS.get(step, []):
        if field_name == "roles" and record.selected_tier in ROLE_EXEMPT_TIERS:
            continue
        if not _is_answered(getattr(record, field_name)):
            return False
    return True


def finalize_record(record: OnboardingRecord) -> OnboardingRecord:
    """
    Drop answers that do not apply to the final record.

    - the expiration-alert lead time only exists alongside an affirmative
      compliance-tracking answer
    - roles are meaningless on the free tier
    """
    changes: Dict[str, Any] = {}
    if not record.compliance_tracking.startswith("Yes"):
        changes["expiration_alerts"] = ""
    if record.selected_tier == Tier.FREE.value:
        changes["roles"] = []
    if not changes:
        return record
    return record.model_copy(update=changes)


def parse_employee_count(answer: str) -> int:
    """Leading integer of the employee-count answer ("6-20" -> 6), at least 1."""
    match = re.match(r"\s*(\d+)", answer or "")
    if not match:
        return 1
    return int(match.group(1)) or 1


# =============================================================================
# REDUCER
# =============================================================================

def reduce(state: WizardState, action: OnboardingAction) -> WizardState:
    """
    Apply one wizard action and return the next state.

    ``next`` on an invalid step (or past the review step) leaves the state
    unchanged; ``prev`` is never blocked and stops at step 1. ``submit``
    only marks the state as submitting; the write itself belongs to
    OnboardingService.
    """
    if isinstance(action, UpdateAction):
        if state.completed:
            raise ConflictException("Onboarding has already been completed")
        return state.model_copy(update={"data": merge_record(state.data, action.data)})

    if isinstance(action, NextAction):
        if state.step >= TOTAL_STEPS or not is_step_valid(state.step, state.data):
            return state
        return state.model_copy(update={"step": state.step + 1})

    if isinstance(action, PrevAction):
        return state.model_copy(update={"step": max(state.step - 1, 1)})

    if isinstance(action, SubmitAction):
        if state.completed:
            raise ConflictException("Onboarding has already been completed")
        if state.step != REVIEW_STEP:
            raise BusinessRuleException(
                "Onboarding can only be submitted from the review step",
                details={"step": state.step},
            )
        return state.model_copy(update={"submitting": True, "error": None})

    raise BusinessRuleException(f"Unsupported onboarding action: {action!r}")


def submission_succeeded(state: WizardState, organization_id: uuid.UUID) -> WizardState:
    return state.model_copy(update={
        "submitting": False,
        "error": None,
        "completed": True,
        "organization_id": organization_id,
        "redirect_to": COMPLETION_REDIRECT,
    })


def submission_failed(state: WizardState, message: str = SUBMIT_ERROR_MESSAGE) -> WizardState:
    return state.model_copy(update={"submitting": False, "error": message})


def build_state_response(state: WizardState) -> OnboardingStateResponse:
    return OnboardingStateResponse(
        step=state.step,
        total_steps=TOTAL_STEPS,
        step_title=STEP_TITLES[state.step],
        is_form_valid=is_step_valid(state.step, state.data),
        data=state.data.to_wire(),
        submitting=state.submitting,
        error=state.error,
        completed=state.completed,
        organization_id=state.organization_id,
        redirect_to=state.redirect_to,
    )


def list_steps() -> List[OnboardingStepInfo]:
    return [
        OnboardingStepInfo(
            number=number,
            title=STEP_TITLES[number],
            required_fields=[_camel(name) for name in STEP_REQUIREMENTS[number]],
        )
        for number in range(1, TOTAL_STEPS + 1)
    ]


def _camel(field_name: str) -> str:
    return OnboardingRecord.model_fields[field_name].alias or field_name


# =============================================================================
# SERVICE
# =============================================================================

class OnboardingService:
    """Persists the wizard draft per account and performs the submission."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_or_create_draft(self, user_id: uuid.UUID) -> OnboardingDraft:
        result = await self.db.execute(
            select(OnboardingDraft).where(OnboardingDraft.user_id == user_id)
        )
        draft = result.scalar_one_or_none()
        if draft is None:
            draft = OnboardingDraft(
                user_id=user_id,
                step=1,
                data=OnboardingRecord().to_wire(),
            )
            self.db.add(draft)
            await self.db.flush()
        return draft

    @staticmethod
    def _state_from_draft(draft: OnboardingDraft) -> WizardState:
        return WizardState(
            step=draft.step,
            data=OnboardingRecord.model_validate(draft.data or {}),
            error=draft.error,
            completed=draft.organization_id is not None,
            organization_id=draft.organization_id,
            redirect_to=COMPLETION_REDIRECT if draft.organization_id else None,
        )

    @staticmethod
    def _store_state(draft: OnboardingDraft, state: WizardState) -> None:
        draft.step = state.step
        draft.data = state.data.to_wire()
        draft.error = state.error
        draft.organization_id = state.organization_id

    async def get_state(self, user_id: uuid.UUID) -> WizardState:
        draft = await self._get_or_create_draft(user_id)
        await self.db.commit()
        return self._state_from_draft(draft)

    async def dispatch(self, user_id: uuid.UUID, action: OnboardingAction) -> WizardState:
        """
        Apply an action to the account's wizard and persist the new state.

        Args:
            user_id: Account driving the wizard
            action: Tagged wizard action

        Returns:
            The wizard state after the action
        """
        draft = await self._get_or_create_draft(user_id)
        state = reduce(self._state_from_draft(draft), action)

        if isinstance(action, SubmitAction):
            return await self._submit(draft, state, user_id)

        self._store_state(draft, state)
        await self.db.commit()
        return state

    async def _submit(
        self,
        draft: OnboardingDraft,
        state: WizardState,
        user_id: uuid.UUID,
    ) -> WizardState:
        draft_id = draft.id
        record = finalize_record(state.data)

        try:
            organization = await self._create_organization(record)
            state = submission_succeeded(state, organization.id)
            self._store_state(draft, state)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Onboarding submission failed for user {user_id}: {e}")
            state = submission_failed(state)
            draft = await self.db.get(OnboardingDraft, draft_id, populate_existing=True)
            if draft is None:
                draft = await self._get_or_create_draft(user_id)
            self._store_state(draft, state)
            await self.db.commit()
            return state

        logger.info(f"Organization {state.organization_id} created by onboarding for user {user_id}")
        await self._link_profile(user_id, state.organization_id)
        return state

    async def _create_organization(self, record: OnboardingRecord) -> Organization:
        """The single confirmed write of the submission."""
        organization = Organization(
            business_name=record.business_name,
            tier=Tier(record.selected_tier or Tier.FREE.value),
            employee_count=parse_employee_count(record.employee_count),
            onboarding_data=record.to_wire(),
            onboarding_complete=True,
        )
        self.db.add(organization)
        await self.db.flush()
        return organization

    async def _link_profile(self, user_id: uuid.UUID, organization_id: uuid.UUID) -> bool:
        """Make the submitter the organization's super admin; failures are only logged."""
        try:
            result = await self.db.execute(
                update(Profile)
                .where(Profile.id == user_id)
                .values(organization_id=organization_id, role=ProfileRole.SUPER_ADMIN)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error linking profile {user_id} to organization {organization_id}: {e}")
            return False

        if result.rowcount == 0:
            logger.warning(f"No profile found for user {user_id}; organization {organization_id} left without an admin")
            return False
        return True
