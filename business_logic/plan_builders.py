"""
Structural plan edits: adding, duplicating and removing flightings.

A flighting is a line item with its own flight and tracking record. Every
builder returns a new plan with the timeline and block plans brought up to
date.
"""

import copy
import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Optional

from models.channel_extensions import (
    AffiliateExtension,
    Channel,
    EmailDmExtension,
    GamingNativeExtension,
    OohExtension,
    default_extension,
)
from models.data_models import (
    Audience,
    Campaign,
    Creative,
    Flight,
    LineItem,
    Plan,
    Tracking,
    Vendor,
)
from business_logic.block_plan_sync import ensure_plan_block_plans, sync_block_plan_to_flight, update_plan_timeline
from business_logic.calendar_utils import add_days, start_of_week
from business_logic.error_handler import PlanStructureError

logger = logging.getLogger(__name__)

CREATIVE_FORMAT_BY_CHANNEL = {
    Channel.TV: "Video",
    Channel.BVOD_CTV: "Connected TV",
    Channel.DIGITAL_DISPLAY: "Display",
    Channel.DIGITAL_VIDEO: "Video",
    Channel.SOCIAL: "Social",
    Channel.SEARCH: "Search",
    Channel.RADIO: "Audio",
    Channel.STREAMING_AUDIO: "Audio",
    Channel.PODCAST: "Podcast",
    Channel.CINEMA: "Cinema",
    Channel.PRINT: "Print",
    Channel.RETAIL_MEDIA: "Retail",
    Channel.INFLUENCER: "Influencer",
    Channel.SPONSORSHIP: "Sponsorship",
    Channel.EMAIL: "Email",
    Channel.DIRECT_MAIL: "Direct Mail",
    Channel.GAMING: "Gaming",
    Channel.NATIVE: "Native",
    Channel.AFFILIATE: "Affiliate",
    Channel.EXPERIENTIAL: "Experiential",
    Channel.OOH: "OOH",
}


def create_id(prefix: str = "id") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def default_campaign(plan: Plan) -> Campaign:
    if plan.campaigns:
        return plan.campaigns[0]
    return Campaign(
        campaign_id=create_id("cmp"),
        name=plan.meta.name,
        brand=plan.meta.client,
        objective="Define campaign objective",
        primary_kpi="Reach"
    )


def default_creative(channel: Channel) -> Creative:
    return Creative(
        creative_id=create_id("crv"),
        ad_name=f"{channel.value.replace('_', ' ')} placeholder",
        format=CREATIVE_FORMAT_BY_CHANNEL.get(channel, "Standard")
    )


def seeded_extension(channel: Channel):
    """Channel extension for a brand-new line item."""
    extension = default_extension(channel)
    if isinstance(extension, OohExtension):
        extension.ooh_asset_id = create_id("ooh")
        extension.owner = "Pending owner"
    elif isinstance(extension, EmailDmExtension) and channel == Channel.DIRECT_MAIL:
        extension.channel_type = "direct_mail"
    elif isinstance(extension, GamingNativeExtension) and channel == Channel.NATIVE:
        extension.subtype = "native"
    elif isinstance(extension, AffiliateExtension):
        extension.partner_id = create_id("partner")
    return extension


def add_flighting(plan: Plan, channel: Channel, today: Optional[date] = None) -> Plan:
    """
    Add a one-week flighting for a channel.

    The new line item copies pricing, vendor, creative, audience and
    extension from the channel's first line item when there is one. The
    flight covers the week containing ``today``.

    Args:
        plan: Source plan
        channel: Channel to add
        today: Reference date, defaults to the current date

    Returns:
        Updated copy of the plan
    """
    next_plan = copy.deepcopy(plan)
    base = next((item for item in next_plan.line_items if item.channel == channel), None)
    campaign = default_campaign(next_plan)
    if not next_plan.campaigns:
        next_plan.campaigns.append(campaign)

    audience = next_plan.find_audience(base.audience_id) if base else None
    if audience is None:
        audience = Audience(audience_id=create_id("aud"), definition="Audience pending definition")
        next_plan.audiences.append(audience)
    vendor = next_plan.find_vendor(base.vendor_id) if base else None
    if vendor is None:
        vendor = Vendor(vendor_id=create_id("vnd"), name="Pending vendor")
        next_plan.vendors.append(vendor)
    creative = next_plan.find_creative(base.creative_id) if base else None
    if creative is None:
        creative = default_creative(channel)
        next_plan.creatives.append(creative)

    start = start_of_week(today or date.today(), next_plan.week_start_day)
    flight = Flight(
        flight_id=create_id("flt"),
        campaign_id=campaign.campaign_id,
        start_date=start,
        end_date=add_days(start, 6),
        budget_total=base.cost_planned if base else 0.0,
        buying_currency=campaign.currency
    )

    if base:
        line_item = replace(
            copy.deepcopy(base),
            line_item_id=create_id("li"),
            flight_id=flight.flight_id,
            block_plan=None
        )
    else:
        line_item = LineItem(
            line_item_id=create_id("li"),
            flight_id=flight.flight_id,
            channel=channel,
            vendor_id=vendor.vendor_id,
            creative_id=creative.creative_id,
            audience_id=audience.audience_id,
            goal_type="Reach",
            extension=seeded_extension(channel)
        )

    next_plan.flights.append(flight)
    next_plan.line_items.append(line_item)
    next_plan.tracking.append(Tracking(line_item_id=line_item.line_item_id))

    logger.info(f"Added {channel.value} flighting {line_item.line_item_id} to plan {plan.plan_id}")
    return sync_block_plan_to_flight(update_plan_timeline(next_plan), line_item.line_item_id)


def duplicate_flighting(plan: Plan, line_item_id: str) -> Plan:
    """
    Copy a line item and its flight under fresh ids.

    Raises:
        PlanStructureError: If the line item does not exist
    """
    source = plan.find_line_item(line_item_id)
    if source is None:
        raise PlanStructureError(f"Line item {line_item_id} not found in plan {plan.plan_id}")

    next_plan = copy.deepcopy(plan)
    flight = next_plan.find_flight(source.flight_id)
    if flight is not None:
        new_flight = replace(copy.deepcopy(flight), flight_id=create_id("flt"))
    else:
        today = date.today()
        new_flight = Flight(
            flight_id=create_id("flt"),
            campaign_id=default_campaign(next_plan).campaign_id,
            start_date=today,
            end_date=add_days(today, 6),
            budget_total=source.cost_planned
        )

    duplicated = replace(copy.deepcopy(source), line_item_id=create_id("li"), flight_id=new_flight.flight_id)
    next_plan.flights.append(new_flight)
    next_plan.line_items.append(duplicated)
    next_plan.tracking.append(Tracking(line_item_id=duplicated.line_item_id))

    logger.info(f"Duplicated {line_item_id} as {duplicated.line_item_id}")
    return sync_block_plan_to_flight(update_plan_timeline(next_plan), duplicated.line_item_id)


def remove_flighting(plan: Plan, line_item_id: str) -> Plan:
    """
    Remove a line item, its tracking, and its flight when nothing else uses it.

    The plan range shrinks to the remaining flights and existing block plans
    are re-aligned onto it.

    Raises:
        PlanStructureError: If the line item does not exist
    """
    line_item = plan.find_line_item(line_item_id)
    if line_item is None:
        raise PlanStructureError(f"Line item {line_item_id} not found in plan {plan.plan_id}")

    next_plan = copy.deepcopy(plan)
    next_plan.line_items = [item for item in next_plan.line_items if item.line_item_id != line_item_id]
    next_plan.tracking = [item for item in next_plan.tracking if item.line_item_id != line_item_id]
    if not any(item.flight_id == line_item.flight_id for item in next_plan.line_items):
        next_plan.flights = [flight for flight in next_plan.flights if flight.flight_id != line_item.flight_id]

    logger.info(f"Removed flighting {line_item_id} from plan {plan.plan_id}")
    if any(item.block_plan is not None for item in next_plan.line_items):
        return ensure_plan_block_plans(next_plan)
    return update_plan_timeline(next_plan)
