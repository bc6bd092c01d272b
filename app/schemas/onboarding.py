"""
WorkForce - Onboarding Schemas

Pydantic schemas for the onboarding wizard: the accumulated intake record,
the tagged wizard actions and the state returned to the client.

Records are exchanged in camelCase (the wizard's wire format) and accepted
in either camelCase or snake_case.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator
from pydantic.alias_generators import to_camel


# ===========================================
# ANSWER OPTIONS
# ===========================================

SelectedTier = Literal["", "free", "solo", "business"]

SchedulingMethod = Literal[
    "",
    "Pen and paper",
    "Excel/Google Sheets",
    "Another scheduling software",
    "No formal system",
    "Verbal communication only",
]

DocumentStorageNeed = Literal[
    "Yes, I need to store employee certifications/licenses",
    "Yes, I need to store business permits/insurance docs",
    "Yes, I need to store client contracts/forms",
    "No, I don't have major document storage needs",
]
NO_DOCUMENT_STORAGE: DocumentStorageNeed = "No, I don't have major document storage needs"

ComplianceTracking = Literal[
    "",
    "Yes, strict requirement (fines/legal issues if expired)",
    "Yes, internal requirement (policy)",
    "No, not critical",
]

ExpirationAlert = Literal[
    "",
    "30 days before",
    "60 days before",
    "90 days before",
    "Custom timeframe",
]

InventoryTracking = Literal[
    "",
    "Yes, I sell products and need to track stock levels",
    "Yes, I use supplies for services and need to track usage",
    "No, I don't need inventory tracking",
]

SupplyOrdering = Literal[
    "",
    "Yes, I want to order directly through the app",
    "Yes, I just want to track orders made elsewhere",
    "No, I handle this separately",
]

PayrollMethod = Literal[
    "",
    "I do it myself manually",
    "I use a payroll software (ADP, Gusto, etc.)",
    "I have an accountant/bookkeeper",
    "I don't have payroll yet",
]

TaxFilingHelp = Literal[
    "",
    "Yes, I need full support",
    "Yes, I need generating reports for my accountant",
    "No, I have this covered",
]

FinancialReport = Literal[
    "Profit & Loss (P&L)",
    "Expense tracking",
    "Revenue by service/product",
    "Employee commission/tips",
    "Sales tax reports",
]

AccountingIntegration = Literal[
    "",
    "QuickBooks",
    "Xero",
    "FreshBooks",
    "Wave",
    "Other",
    "None/Not needed",
]


# ===========================================
# RECORD
# ===========================================

class CamelModel(BaseModel):
    """Base for models exchanged in the wizard's camelCase format."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DayHours(CamelModel):
    open: str = ""
    close: str = ""
    closed: bool = False


class TeamComposition(CamelModel):
    full_time: int = 0
    part_time: int = 0
    contractors: int = 0
    seasonal: int = 0


class ApprovalWorkflows(CamelModel):
    time_off: bool = False
    shift_swaps: bool = False
    schedule_changes: bool = False
    overtime: bool = False


class ServiceTracking(CamelModel):
    time: bool = False
    quality: bool = False
    assignments: bool = False
    inventory: bool = False
    sops: bool = False


class ComparisonAndAi(CamelModel):
    multi_location: bool = False
    departments: bool = False
    employees: bool = False
    time_periods: bool = False
    ai_insights: str = ""


class BrandAssets(CamelModel):
    logo: bool = False
    colors: bool = False
    guidelines: bool = False
    fonts: bool = False


class CommunicationBranding(CamelModel):
    email: str = ""
    sms: str = ""


class SupportNeeds(CamelModel):
    setup: bool = False
    import_: bool = Field(default=False, alias="import")
    manager_training: bool = False
    staff_training: bool = False
    ongoing: bool = False


class ContactInfo(CamelModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    best_time: str = ""
    method: List[str] = Field(default_factory=list)


class OnboardingRecord(CamelModel):
    """
    One organization's intake answers, collected across the wizard steps.

    Every field has an empty default so a record can be built up one
    field-group at a time. Array-valued fields are replaced wholesale on
    update.
    """

    # ===== 1. BUSINESS BASICS =====
    business_name: str = ""
    dba: Optional[str] = None
    industry: str = ""
    years_in_business: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    has_multiple_locations: bool = False
    location_count: Optional[int] = None
    operating_hours: Dict[str, DayHours] = Field(default_factory=dict)

    # ===== 2. TEAM & STAFFING =====
    employee_count: str = ""
    expected_growth: str = ""
    roles: List[str] = Field(default_factory=list)
    leadership_count: int = 0
    team_composition: TeamComposition = Field(default_factory=TeamComposition)

    # ===== 3. SCHEDULING =====
    scheduling_method: SchedulingMethod = ""
    advance_scheduling: str = ""
    schedule_change_frequency: str = ""
    scheduling_challenges: List[str] = Field(default_factory=list)
    approval_workflows: ApprovalWorkflows = Field(default_factory=ApprovalWorkflows)
    time_tracking: str = ""
    appointment_based: str = ""

    # ===== 4. CLIENT MANAGEMENT =====
    client_count: str = ""
    crm_system: str = ""
    important_data: List[str] = Field(default_factory=list)
    client_portal_features: List[str] = Field(default_factory=list)
    ai_crm_assistance: str = ""
    client_follow_up: str = ""

    # ===== 5. SERVICES =====
    service_count: str = ""
    certification_required: str = ""
    service_tracking: ServiceTracking = Field(default_factory=ServiceTracking)
    product_sales: str = ""

    # ===== 6. VAULT & COMPLIANCE =====
    document_storage_needs: List[DocumentStorageNeed] = Field(default_factory=list)
    compliance_tracking: ComplianceTracking = ""
    expiration_alerts: ExpirationAlert = ""

    # ===== 7. OPERATIONS & LOGISTICS =====
    inventory_tracking: InventoryTracking = ""
    supply_ordering: SupplyOrdering = ""
    equipment_maintenance: str = ""
    vendor_management: str = ""

    # ===== 8. PAYROLL & FINANCIALS =====
    payroll_method: PayrollMethod = ""
    tax_filing_help: TaxFilingHelp = ""
    financial_reporting: List[FinancialReport] = Field(default_factory=list)
    accounting_integration: AccountingIntegration = ""

    # ===== 9. COMMUNICATION =====
    communication_tools: List[str] = Field(default_factory=list)
    customer_messaging: str = ""

    # ===== ANALYTICS =====
    top_metrics: List[str] = Field(default_factory=list)
    review_frequency: str = ""
    comparison_and_ai: ComparisonAndAi = Field(default_factory=ComparisonAndAi)

    # ===== 10. APP CUSTOMIZATION =====
    brand_importance: str = ""
    brand_assets: BrandAssets = Field(default_factory=BrandAssets)
    custom_domain: str = ""
    whitelabel: str = ""
    communication_branding: CommunicationBranding = Field(default_factory=CommunicationBranding)

    # ===== PLAN =====
    selected_tier: SelectedTier = ""
    budget: str = ""
    roi_timeline: str = ""

    # ===== PAIN POINTS =====
    challenges: List[str] = Field(default_factory=list)
    sched_time: str = ""
    admin_time: str = ""
    success_metrics: List[str] = Field(default_factory=list)
    must_have_feature: str = ""

    # ===== 11. TECHNOLOGY & PRIORITIES =====
    current_systems: List[str] = Field(default_factory=list)
    priority_features: List[str] = Field(default_factory=list)
    integrations: str = ""
    tech_savviness: str = ""
    devices: List[str] = Field(default_factory=list)
    field_access: str = ""

    # ===== 12. IMPLEMENTATION =====
    start_date: str = ""
    support_needs: SupportNeeds = Field(default_factory=SupportNeeds)
    learning_style: List[str] = Field(default_factory=list)
    support_level: str = ""
    uptime_criticality: str = ""

    # ===== ADDITIONAL =====
    specific_requirements: str = ""
    deal_breakers: str = ""
    past_tools: str = ""
    industry_regulations: str = ""
    insurance_requirements: str = ""
    urgency: str = ""
    decision_factor: str = ""
    decision_makers: List[str] = Field(default_factory=list)
    additional_info: str = ""
    contact: ContactInfo = Field(default_factory=ContactInfo)

    @model_validator(mode="after")
    def storage_none_is_exclusive(self) -> "OnboardingRecord":
        """The 'no storage needs' answer cannot be combined with other needs."""
        needs = self.document_storage_needs
        if NO_DOCUMENT_STORAGE in needs and len(set(needs)) > 1:
            raise ValueError(
                "'No document storage needs' cannot be combined with other storage options"
            )
        return self

    def to_wire(self) -> Dict[str, Any]:
        """camelCase JSON-compatible representation."""
        return self.model_dump(mode="json", by_alias=True)


# ===========================================
# WIZARD ACTIONS
# ===========================================

class UpdateAction(BaseModel):
    """Merge a partial set of fields into the record."""
    type: Literal["update"]
    data: Dict[str, Any] = Field(default_factory=dict)


class NextAction(BaseModel):
    type: Literal["next"]


class PrevAction(BaseModel):
    type: Literal["prev"]


class SubmitAction(BaseModel):
    type: Literal["submit"]


OnboardingAction = Annotated[
    Union[UpdateAction, NextAction, PrevAction, SubmitAction],
    Field(discriminator="type"),
]


class OnboardingActionRequest(RootModel[OnboardingAction]):
    """Request body carrying a single wizard action."""


# ===========================================
# WIZARD STATE
# ===========================================

class WizardState(BaseModel):
    """Explicit wizard state, advanced only by the reducer."""
    step: int = 1
    data: OnboardingRecord = Field(default_factory=OnboardingRecord)
    submitting: bool = False
    error: Optional[str] = None
    completed: bool = False
    organization_id: Optional[UUID] = None
    redirect_to: Optional[str] = None


class OnboardingStateResponse(BaseModel):
    """Wizard state as returned to the client."""
    step: int
    total_steps: int
    step_title: str
    is_form_valid: bool
    data: Dict[str, Any]
    submitting: bool = False
    error: Optional[str] = None
    completed: bool = False
    organization_id: Optional[UUID] = None
    redirect_to: Optional[str] = None


class OnboardingStepInfo(BaseModel):
    number: int
    title: str
    required_fields: List[str]
