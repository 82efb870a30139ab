"""
Core data models for the media plan computation engine.

A Plan is the aggregate root. Children reference each other by id only;
nothing holds a back-pointer to the plan.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from models.channel_extensions import Channel, ChannelExtension


class PlanStatus(Enum):
    """Plan lifecycle states."""
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ARCHIVED = "Archived"


class WeekStartDay(Enum):
    """Week start convention used for block plan weeks."""
    MONDAY = "Monday"
    SUNDAY = "Sunday"


class BidType(Enum):
    CPM = "CPM"
    CPC = "CPC"
    CPA = "CPA"


class PricingModel(Enum):
    CPM = "CPM"
    CPC = "CPC"
    CPA = "CPA"
    CPP = "CPP"
    CPT = "CPT"
    FIXED = "Fixed"
    HYBRID = "Hybrid"


class TacticChannel(Enum):
    """Channels available on the flat tactic model."""
    SEARCH = "Search"
    SOCIAL = "Social"
    DISPLAY = "Display"
    VIDEO = "Video"
    AUDIO = "Audio"
    DOOH = "DOOH"
    AFFILIATE = "Affiliate"
    RETAIL_MEDIA = "Retail Media"
    OTHER = "Other"


class ApprovalAction(Enum):
    CREATED = "created"
    EDITED = "edited"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVERTED = "reverted"
    DUPLICATED = "duplicated"


class Timegrain(Enum):
    """Bucket size for block plan matrices."""
    WEEK = "Week"
    FORTNIGHT = "Fortnight"
    MONTH = "Month"


class GroupBy(Enum):
    CHANNEL = "Channel"
    TACTIC = "Tactic"


class BlockMetric(Enum):
    BUDGET = "Budget"
    IMPRESSIONS = "Impressions"
    CLICKS = "Clicks"
    CONVERSIONS = "Conversions"


@dataclass(frozen=True)
class DateRange:
    """Closed calendar date range; both ends inclusive."""
    start: date
    end: date


@dataclass
class PlanMeta:
    name: str
    code: str = ""
    version: int = 1
    client: str = ""


@dataclass
class PlanGoal:
    """Plan-level targets."""
    budget: float = 0.0
    reach: float = 0.0
    frequency: float = 0.0


@dataclass
class CampaignGoal:
    kpi: str = "Impressions"
    target: float = 0.0


@dataclass
class Campaign:
    """Campaign owning flights and tactics."""
    campaign_id: str
    name: str
    brand: str = ""
    objective: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currency: str = "USD"
    goal: CampaignGoal = field(default_factory=CampaignGoal)
    market: str = ""
    primary_kpi: str = ""
    fiscal_period: str = ""


@dataclass
class Flight:
    """Scheduled buy window for a campaign."""
    flight_id: str
    campaign_id: str
    start_date: date
    end_date: date
    budget_total: float = 0.0
    buy_type: str = "Guaranteed"
    buying_currency: str = "USD"
    fx_rate: float = 1.0
    active_periods: List[DateRange] = field(default_factory=list)


@dataclass
class Audience:
    audience_id: str
    definition: str = ""
    segments: List[str] = field(default_factory=list)


@dataclass
class Vendor:
    vendor_id: str
    name: str


@dataclass
class Creative:
    creative_id: str
    ad_name: str
    asset_uri: str = ""
    format: str = "Standard"


@dataclass
class BlockPlanWeek:
    """One week of a line item's schedule, keyed by the ISO date the week starts on."""
    week_start: str
    active: bool


@dataclass
class BlockPlan:
    """Per-week active flags for a single line item."""
    version: int = 1
    week_unit: str = "plan-week"
    weeks: List[BlockPlanWeek] = field(default_factory=list)


@dataclass
class LineItem:
    """Channel placement within a flight."""
    line_item_id: str
    flight_id: str
    channel: Channel
    vendor_id: str = ""
    creative_id: str = ""
    audience_id: str = ""
    goal_type: str = "Impressions"
    pricing_model: PricingModel = PricingModel.CPM
    rate: float = 0.0
    rate_unit: str = "CPM"
    units_planned: float = 0.0
    cost_planned: float = 0.0
    pacing: str = "Even"
    extension: Optional[ChannelExtension] = None
    block_plan: Optional[BlockPlan] = None


@dataclass
class Tracking:
    line_item_id: str
    ad_server: str = ""
    tracking_url: str = ""


@dataclass
class DeliveryActual:
    """Delivered numbers for one line item on one day."""
    line_item_id: str
    delivery_date: date
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    spend: float = 0.0


@dataclass(frozen=True)
class ApprovalEvent:
    """Immutable audit trail entry."""
    event_id: str
    actor: str
    action: ApprovalAction
    timestamp: datetime
    comment: Optional[str] = None


@dataclass
class Tactic:
    """Flat budget line used by the budget allocator and tactic-level reporting."""
    tactic_id: str
    channel: TacticChannel
    flight_start: date
    flight_end: date
    budget: float
    bid_type: BidType
    campaign_id: str = ""
    name: str = ""
    vendor: Optional[str] = None
    est_cpm: Optional[float] = None
    est_cpc: Optional[float] = None
    est_cpa: Optional[float] = None
    goal_impressions: Optional[float] = None
    goal_clicks: Optional[float] = None
    goal_conversions: Optional[float] = None
    notes: Optional[str] = None


@dataclass
class PlanConstraints:
    max_share_per_channel: Optional[float] = None
    min_tactic_budget: Optional[float] = None
    daily_pacing: bool = False


@dataclass
class Plan:
    """Media plan aggregate root."""
    plan_id: str
    meta: PlanMeta
    status: PlanStatus = PlanStatus.DRAFT
    goal: PlanGoal = field(default_factory=PlanGoal)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    week_start_day: WeekStartDay = WeekStartDay.MONDAY
    owner: str = ""
    approver: Optional[str] = None
    campaigns: List[Campaign] = field(default_factory=list)
    flights: List[Flight] = field(default_factory=list)
    audiences: List[Audience] = field(default_factory=list)
    vendors: List[Vendor] = field(default_factory=list)
    creatives: List[Creative] = field(default_factory=list)
    line_items: List[LineItem] = field(default_factory=list)
    tactics: List[Tactic] = field(default_factory=list)
    tracking: List[Tracking] = field(default_factory=list)
    delivery_actuals: List[DeliveryActual] = field(default_factory=list)
    audit: List[ApprovalEvent] = field(default_factory=list)
    constraints: PlanConstraints = field(default_factory=PlanConstraints)
    last_modified: Optional[datetime] = None

    def find_line_item(self, line_item_id: str) -> Optional[LineItem]:
        return next((item for item in self.line_items if item.line_item_id == line_item_id), None)

    def find_flight(self, flight_id: str) -> Optional[Flight]:
        return next((item for item in self.flights if item.flight_id == flight_id), None)

    def find_vendor(self, vendor_id: str) -> Optional[Vendor]:
        return next((item for item in self.vendors if item.vendor_id == vendor_id), None)

    def find_audience(self, audience_id: str) -> Optional[Audience]:
        return next((item for item in self.audiences if item.audience_id == audience_id), None)

    def find_creative(self, creative_id: str) -> Optional[Creative]:
        return next((item for item in self.creatives if item.creative_id == creative_id), None)

    def find_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return next((item for item in self.campaigns if item.campaign_id == campaign_id), None)
