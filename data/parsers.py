"""
Parsers for plan documents.

Plans are stored as JSON objects with ISO date strings and enum values
written as their labels. Keys follow the model field names; the camelCase
names used by older exports (lineItems, flightStart, bidType, ...) are
accepted as well.
"""

import json
import logging
from dataclasses import asdict
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from business_logic.calendar_utils import parse_iso_date
from config.settings import config_manager
from models.channel_extensions import Channel, extension_from_dict
from models.data_models import (
    ApprovalAction,
    ApprovalEvent,
    Audience,
    BidType,
    BlockPlan,
    BlockPlanWeek,
    Campaign,
    CampaignGoal,
    Creative,
    DateRange,
    DeliveryActual,
    Flight,
    LineItem,
    Plan,
    PlanConstraints,
    PlanGoal,
    PlanMeta,
    PlanStatus,
    PricingModel,
    Tactic,
    TacticChannel,
    Tracking,
    Vendor,
    WeekStartDay,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PlanParseError(ValueError):
    """Raised when a plan document is malformed."""
    pass


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _optional_date(value: Any) -> Optional[date]:
    return parse_iso_date(value) if value else None


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None and value != "" else None


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_campaign(data: Dict[str, Any]) -> Campaign:
    goal = data.get("goal") or {}
    return Campaign(
        campaign_id=_pick(data, "campaign_id", "id"),
        name=_pick(data, "name", default=""),
        brand=_pick(data, "brand", default=""),
        objective=_pick(data, "objective", default=""),
        start_date=_optional_date(_pick(data, "start_date", "startDate")),
        end_date=_optional_date(_pick(data, "end_date", "endDate")),
        currency=_pick(data, "currency", default=config_manager.load_config().default_currency),
        goal=CampaignGoal(kpi=goal.get("kpi", "Impressions"), target=float(goal.get("target", 0))),
        market=_pick(data, "market", default=""),
        primary_kpi=_pick(data, "primary_kpi", default=""),
        fiscal_period=_pick(data, "fiscal_period", default="")
    )


def parse_flight(data: Dict[str, Any]) -> Flight:
    return Flight(
        flight_id=data["flight_id"],
        campaign_id=_pick(data, "campaign_id", default=""),
        start_date=parse_iso_date(data["start_date"]),
        end_date=parse_iso_date(data["end_date"]),
        budget_total=float(_pick(data, "budget_total", default=0)),
        buy_type=_pick(data, "buy_type", default="Guaranteed"),
        buying_currency=_pick(data, "buying_currency", default="USD"),
        fx_rate=float(_pick(data, "fx_rate", default=1)),
        active_periods=[
            DateRange(parse_iso_date(period["start"]), parse_iso_date(period["end"]))
            for period in _pick(data, "active_periods", default=[])
        ]
    )


def parse_block_plan(data: Optional[Dict[str, Any]]) -> Optional[BlockPlan]:
    if not data:
        return None
    return BlockPlan(
        version=int(data.get("version", 1)),
        week_unit=data.get("week_unit", "plan-week"),
        weeks=[BlockPlanWeek(week_start=week["week_start"], active=bool(week["active"]))
               for week in data.get("weeks", [])]
    )


def parse_line_item(data: Dict[str, Any]) -> LineItem:
    channel = Channel(data["channel"])
    extension_data = data.get("extension")
    if extension_data is None:
        # Older documents store the extension under a channel-specific "<name>_ext" key
        extension_data = next((value for key, value in data.items() if key.endswith("_ext") and value), None)

    return LineItem(
        line_item_id=data["line_item_id"],
        flight_id=_pick(data, "flight_id", default=""),
        channel=channel,
        vendor_id=_pick(data, "vendor_id", default=""),
        creative_id=_pick(data, "creative_id", default=""),
        audience_id=_pick(data, "audience_id", default=""),
        goal_type=_pick(data, "goal_type", default="Impressions"),
        pricing_model=PricingModel(_pick(data, "pricing_model", default="CPM")),
        rate=float(_pick(data, "rate", "rate_numeric", default=0)),
        rate_unit=_pick(data, "rate_unit", default="CPM"),
        units_planned=float(_pick(data, "units_planned", default=0)),
        cost_planned=float(_pick(data, "cost_planned", default=0)),
        pacing=_pick(data, "pacing", default="Even"),
        extension=extension_from_dict(channel, extension_data),
        block_plan=parse_block_plan(data.get("block_plan"))
    )


def parse_tactic(data: Dict[str, Any]) -> Tactic:
    return Tactic(
        tactic_id=_pick(data, "tactic_id", "id"),
        channel=TacticChannel(data["channel"]),
        flight_start=parse_iso_date(_pick(data, "flight_start", "flightStart")),
        flight_end=parse_iso_date(_pick(data, "flight_end", "flightEnd")),
        budget=float(_pick(data, "budget", default=0)),
        bid_type=BidType(_pick(data, "bid_type", "bidType", default="CPM")),
        campaign_id=_pick(data, "campaign_id", "campaignId", default=""),
        name=_pick(data, "name", default=""),
        vendor=_pick(data, "vendor"),
        est_cpm=_optional_float(_pick(data, "est_cpm", "estCpm")),
        est_cpc=_optional_float(_pick(data, "est_cpc", "estCpc")),
        est_cpa=_optional_float(_pick(data, "est_cpa", "estCpa")),
        goal_impressions=_optional_float(_pick(data, "goal_impressions", "goalImpressions")),
        goal_clicks=_optional_float(_pick(data, "goal_clicks", "goalClicks")),
        goal_conversions=_optional_float(_pick(data, "goal_conversions", "goalConversions")),
        notes=_pick(data, "notes")
    )


def parse_event(data: Dict[str, Any]) -> ApprovalEvent:
    return ApprovalEvent(
        event_id=_pick(data, "event_id", "id"),
        actor=data["actor"],
        action=ApprovalAction(data["action"]),
        timestamp=_parse_datetime(data["timestamp"]),
        comment=data.get("comment")
    )


def plan_from_dict(data: Dict[str, Any]) -> Plan:
    """
    Build a Plan from a decoded JSON document.

    Args:
        data: Plan document

    Returns:
        Plan instance

    Raises:
        PlanParseError: If a required key is missing or a value is invalid
    """
    try:
        meta = data.get("meta") or {}
        goal = data.get("goal") or {}
        constraints = data.get("constraints") or {}
        default_day = config_manager.load_config().default_week_start_day

        return Plan(
            plan_id=_pick(data, "plan_id", "id"),
            meta=PlanMeta(
                name=meta.get("name", ""),
                code=meta.get("code", ""),
                version=int(meta.get("version", 1)),
                client=meta.get("client", "")
            ),
            status=PlanStatus(data.get("status", "Draft")),
            goal=PlanGoal(
                budget=float(goal.get("budget", 0)),
                reach=float(goal.get("reach", 0)),
                frequency=float(goal.get("frequency", 0))
            ),
            start_date=_optional_date(data.get("start_date")),
            end_date=_optional_date(data.get("end_date")),
            week_start_day=WeekStartDay(data.get("week_start_day", default_day.value)),
            owner=data.get("owner", ""),
            approver=data.get("approver"),
            campaigns=[parse_campaign(item) for item in data.get("campaigns", [])],
            flights=[parse_flight(item) for item in data.get("flights", [])],
            audiences=[
                Audience(
                    audience_id=item["audience_id"],
                    definition=item.get("definition", ""),
                    segments=list(_pick(item, "segments", "segments_json", default=[]))
                )
                for item in data.get("audiences", [])
            ],
            vendors=[Vendor(vendor_id=item["vendor_id"], name=item.get("name", "")) for item in data.get("vendors", [])],
            creatives=[
                Creative(
                    creative_id=item["creative_id"],
                    ad_name=item.get("ad_name", ""),
                    asset_uri=item.get("asset_uri", ""),
                    format=item.get("format", "Standard")
                )
                for item in data.get("creatives", [])
            ],
            line_items=[parse_line_item(item) for item in _pick(data, "line_items", "lineItems", default=[])],
            tactics=[parse_tactic(item) for item in data.get("tactics", [])],
            tracking=[
                Tracking(
                    line_item_id=item["line_item_id"],
                    ad_server=item.get("ad_server", ""),
                    tracking_url=item.get("tracking_url", "")
                )
                for item in data.get("tracking", [])
            ],
            delivery_actuals=[
                DeliveryActual(
                    line_item_id=item["line_item_id"],
                    delivery_date=parse_iso_date(_pick(item, "delivery_date", "date")),
                    impressions=float(item.get("impressions", 0)),
                    clicks=float(item.get("clicks", 0)),
                    conversions=float(item.get("conversions", 0)),
                    spend=float(item.get("spend", 0))
                )
                for item in _pick(data, "delivery_actuals", "deliveryActuals", default=[])
            ],
            audit=[parse_event(item) for item in data.get("audit", [])],
            constraints=PlanConstraints(
                max_share_per_channel=_optional_float(_pick(constraints, "max_share_per_channel", "maxSharePerChannel")),
                min_tactic_budget=_optional_float(_pick(constraints, "min_tactic_budget", "minTacticBudget")),
                daily_pacing=bool(_pick(constraints, "daily_pacing", "dailyPacing", default=False))
            ),
            last_modified=_parse_datetime(data["last_modified"]) if data.get("last_modified") else None
        )
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"Error parsing plan document: {str(e)}")
        raise PlanParseError(f"Invalid plan document: {str(e)}") from e


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def plan_to_dict(plan: Plan) -> Dict[str, Any]:
    """Convert a plan into a JSON-serializable dictionary."""
    return _jsonable(asdict(plan))


def dump_plan(plan: Plan, file_path: str) -> Path:
    """Write a plan as indented JSON and return the path written."""
    path = Path(file_path)
    path.write_text(json.dumps(plan_to_dict(plan), indent=2), encoding="utf-8")
    logger.info(f"Saved plan {plan.plan_id} to {path}")
    return path


class PlanParser:
    """
    Parser for plan JSON files.

    Checks the file's extension and size against configuration before
    reading it.
    """

    def __init__(self, file_path: str):
        """
        Initialize the parser with a plan file path.

        Args:
            file_path: Path to the plan JSON file
        """
        self.file_path = Path(file_path)

        if not self.file_path.exists():
            raise FileNotFoundError(f"Plan file not found: {file_path}")

    def read_document(self) -> Any:
        """
        Read the decoded JSON document.

        Raises:
            PlanParseError: If the file is not a supported JSON document
        """
        if not config_manager.is_valid_file_format(self.file_path.name):
            raise PlanParseError(f"Unsupported plan file format: {self.file_path.suffix}")

        if self.file_path.stat().st_size > config_manager.get_max_file_size_bytes():
            raise PlanParseError(f"Plan file exceeds size limit: {self.file_path}")

        try:
            return json.loads(self.file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Error reading plan file {self.file_path}: {str(e)}")
            raise PlanParseError(f"Plan file is not valid JSON: {str(e)}") from e

    def parse(self) -> Plan:
        """
        Read and parse a single-plan file.

        Returns:
            Plan instance

        Raises:
            PlanParseError: If the file is not a valid plan document
        """
        plan = plan_from_dict(self.read_document())
        logger.info(f"Loaded plan {plan.plan_id} with {len(plan.line_items)} line items from {self.file_path}")
        return plan


def load_plans(file_path: str) -> List[Plan]:
    """Load a file holding either one plan or a {"plans": [...]} collection."""
    data = PlanParser(file_path).read_document()
    if isinstance(data, dict) and "plans" in data:
        return [plan_from_dict(item) for item in data["plans"]]
    return [plan_from_dict(data)]
