"""
Sample plans for demos and tests.
"""

from datetime import date, datetime

from models.channel_extensions import Channel, DigitalExtension, OohExtension, SearchExtension
from models.data_models import (
    ApprovalAction,
    ApprovalEvent,
    Audience,
    BidType,
    Campaign,
    CampaignGoal,
    Creative,
    Flight,
    LineItem,
    Plan,
    PlanConstraints,
    PlanGoal,
    PlanMeta,
    PricingModel,
    Tactic,
    TacticChannel,
    Tracking,
    Vendor,
    WeekStartDay,
)


def seed_campaigns():
    return [
        Campaign(
            campaign_id="cmp-1",
            name="Q4 Brand Awareness",
            objective="Reach 5M impressions across AU market.",
            start_date=date(2025, 10, 1),
            end_date=date(2025, 12, 31),
            currency="AUD",
            goal=CampaignGoal(kpi="Impressions", target=5000000),
            market="Australia"
        ),
        Campaign(
            campaign_id="cmp-2",
            name="Holiday Retargeting",
            objective="Drive conversions from holiday audiences.",
            start_date=date(2025, 11, 1),
            end_date=date(2025, 12, 31),
            currency="AUD",
            goal=CampaignGoal(kpi="Conversions", target=8000),
            market="Australia"
        ),
    ]


def seed_tactics():
    return [
        Tactic(
            tactic_id="tac-1",
            campaign_id="cmp-1",
            name="YouTube Masthead",
            channel=TacticChannel.VIDEO,
            flight_start=date(2025, 10, 1),
            flight_end=date(2025, 10, 31),
            budget=200000,
            bid_type=BidType.CPM,
            vendor="Google",
            est_cpm=100,
            goal_impressions=2000000,
            notes="Hero video to build hype before launch."
        ),
        Tactic(
            tactic_id="tac-2",
            campaign_id="cmp-1",
            name="Programmatic Display",
            channel=TacticChannel.DISPLAY,
            flight_start=date(2025, 10, 1),
            flight_end=date(2025, 12, 31),
            budget=150000,
            bid_type=BidType.CPM,
            vendor="The Trade Desk",
            est_cpm=60,
            goal_impressions=2500000
        ),
        Tactic(
            tactic_id="tac-3",
            campaign_id="cmp-2",
            name="Search Non-Brand",
            channel=TacticChannel.SEARCH,
            flight_start=date(2025, 11, 1),
            flight_end=date(2025, 12, 31),
            budget=125000,
            bid_type=BidType.CPC,
            vendor="Google",
            est_cpc=2.5,
            goal_clicks=50000
        ),
        Tactic(
            tactic_id="tac-4",
            campaign_id="cmp-2",
            name="Paid Social Carousel",
            channel=TacticChannel.SOCIAL,
            flight_start=date(2025, 11, 15),
            flight_end=date(2025, 12, 26),
            budget=90000,
            bid_type=BidType.CPA,
            vendor="Meta",
            est_cpa=11.25,
            goal_conversions=8000
        ),
    ]


def build_seed_plan() -> Plan:
    """Tactic-based Q4 plan."""
    return Plan(
        plan_id="plan-1",
        meta=PlanMeta(name="Q4 Launch - AU", code="Q4-AU", version=1, client="Acme"),
        goal=PlanGoal(budget=750000, reach=5200000, frequency=3),
        start_date=date(2025, 10, 1),
        end_date=date(2025, 12, 31),
        owner="Taylor Planner",
        campaigns=seed_campaigns(),
        tactics=seed_tactics(),
        constraints=PlanConstraints(max_share_per_channel=0.6, min_tactic_budget=10000),
        audit=[
            ApprovalEvent(
                event_id="audit-1",
                actor="Taylor Planner",
                action=ApprovalAction.CREATED,
                timestamp=datetime(2025, 9, 1, 9, 0)
            )
        ],
        last_modified=datetime(2025, 9, 1, 9, 0)
    )


def build_flighting_seed_plan() -> Plan:
    """Line-item plan with OOH, search and display flightings across November."""
    return Plan(
        plan_id="plan-2",
        meta=PlanMeta(name="Summer Retail Push", code="SUM-AU", version=1, client="Acme"),
        goal=PlanGoal(budget=120000, reach=1500000, frequency=4),
        week_start_day=WeekStartDay.MONDAY,
        owner="Taylor Planner",
        campaigns=[
            Campaign(
                campaign_id="cmp-10",
                name="Summer Retail Push",
                start_date=date(2025, 11, 1),
                end_date=date(2025, 12, 31),
                currency="AUD"
            )
        ],
        flights=[
            Flight(flight_id="flt-1", campaign_id="cmp-10", start_date=date(2025, 11, 3),
                   end_date=date(2025, 11, 30), budget_total=40000, buying_currency="AUD"),
            Flight(flight_id="flt-2", campaign_id="cmp-10", start_date=date(2025, 11, 10),
                   end_date=date(2025, 12, 7), budget_total=30000, buying_currency="AUD"),
            Flight(flight_id="flt-3", campaign_id="cmp-10", start_date=date(2025, 11, 17),
                   end_date=date(2025, 12, 14), budget_total=20000, buying_currency="AUD"),
        ],
        audiences=[Audience(audience_id="aud-1", definition="Grocery buyers 25-54", segments=["grocery", "family"])],
        vendors=[
            Vendor(vendor_id="vnd-1", name="oOh!media"),
            Vendor(vendor_id="vnd-2", name="Google"),
            Vendor(vendor_id="vnd-3", name="The Trade Desk"),
        ],
        creatives=[
            Creative(creative_id="crv-1", ad_name="Summer Billboard", format="OOH"),
            Creative(creative_id="crv-2", ad_name="Summer Search", format="Search"),
            Creative(creative_id="crv-3", ad_name="Summer Display", format="Display"),
        ],
        line_items=[
            LineItem(
                line_item_id="li-1",
                flight_id="flt-1",
                channel=Channel.OOH,
                vendor_id="vnd-1",
                creative_id="crv-1",
                audience_id="aud-1",
                pricing_model=PricingModel.FIXED,
                rate=40000,
                rate_unit="Package",
                units_planned=12,
                cost_planned=40000,
                extension=OohExtension(ooh_asset_id="ooh-1", owner="oOh!media", format="Large format",
                                       digital=True, address="1 George St", suburb="Sydney",
                                       share_of_voice=0.25, slot_length_sec=10)
            ),
            LineItem(
                line_item_id="li-2",
                flight_id="flt-2",
                channel=Channel.SEARCH,
                vendor_id="vnd-2",
                creative_id="crv-2",
                audience_id="aud-1",
                goal_type="Clicks",
                pricing_model=PricingModel.CPC,
                rate=2.5,
                rate_unit="CPC",
                units_planned=12000,
                cost_planned=30000,
                extension=SearchExtension(ad_group="Summer Grocery", keyword="summer deals")
            ),
            LineItem(
                line_item_id="li-3",
                flight_id="flt-3",
                channel=Channel.DIGITAL_DISPLAY,
                vendor_id="vnd-3",
                creative_id="crv-3",
                audience_id="aud-1",
                pricing_model=PricingModel.CPM,
                rate=12.5,
                units_planned=1600000,
                cost_planned=20000,
                extension=DigitalExtension(creative_sizes=["300x250", "728x90"], viewability_goal=0.7)
            ),
        ],
        tracking=[
            Tracking(line_item_id="li-1"),
            Tracking(line_item_id="li-2", ad_server="Campaign Manager"),
            Tracking(line_item_id="li-3", ad_server="Campaign Manager"),
        ]
    )
