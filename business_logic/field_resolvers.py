"""
Field resolver registry for the flighting table.

Maps a (channel, field id) column onto the record that actually stores it:
the line item, its flight, vendor or audience, or the line item's channel
extension. Each resolver has a ``read``, an optional ``write`` and an
optional ``validate``. Writes never touch the caller's plan: they run on a
deep copy and return a fresh context over it. Fields with no resolver for a
channel are read-only.
"""

import copy
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from models.channel_extensions import Channel, default_extension, extension_matches
from models.data_models import Audience, Flight, LineItem, Plan, PricingModel, Vendor
from business_logic.block_plan_sync import sync_block_plan_to_flight
from business_logic.calendar_utils import parse_iso_date
from business_logic.error_handler import MissingFlightError, PlanStructureError, ReadOnlyFieldError
from business_logic.proration import round_to, safe_number

logger = logging.getLogger(__name__)

DATE_FIELDS = ("start_date", "end_date")


@dataclass
class FieldContext:
    """A line item together with the records its columns read from."""
    plan: Plan
    line_item: LineItem
    flight: Optional[Flight] = None
    vendor: Optional[Vendor] = None
    audience: Optional[Audience] = None


@dataclass
class FieldResolver:
    read: Callable[[FieldContext], Any]
    write: Optional[Callable[[FieldContext, Any], None]] = None
    validate: Optional[Callable[[Any, FieldContext], Optional[str]]] = None


def build_field_context(plan: Plan, line_item_id: str) -> FieldContext:
    """
    Resolve a line item and its related records.

    Raises:
        PlanStructureError: If the line item does not exist
    """
    line_item = plan.find_line_item(line_item_id)
    if line_item is None:
        raise PlanStructureError(f"Line item {line_item_id} not found in plan {plan.plan_id}")
    return FieldContext(
        plan=plan,
        line_item=line_item,
        flight=plan.find_flight(line_item.flight_id),
        vendor=plan.find_vendor(line_item.vendor_id),
        audience=plan.find_audience(line_item.audience_id)
    )


def build_flighting_contexts(plan: Plan, channel: Channel) -> List[FieldContext]:
    """Contexts for a channel's line items, ordered by flight start (no flight last)."""
    contexts = [
        build_field_context(plan, line_item.line_item_id)
        for line_item in plan.line_items
        if line_item.channel == channel
    ]
    return sorted(contexts, key=lambda ctx: (ctx.flight is None, ctx.flight.start_date if ctx.flight else None))


# Value coercion for writes

def to_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def to_non_negative(value: Any) -> float:
    number = safe_number(value)
    return number if number > 0 else 0.0


def to_non_negative_int(value: Any) -> int:
    return int(math.floor(to_non_negative(value)))


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "y", "1")
    return bool(value)


def percent_from_value(value: Any) -> float:
    """Read 0.25, 25 or '25%' as a fraction clamped to [0, 1]."""
    if isinstance(value, str):
        value = re.sub(r"[^0-9.\-]", "", value)
    number = safe_number(value)
    if 1 < number <= 100:
        number = number / 100
    return min(1.0, max(0.0, number))


def _leading_number(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    digits = re.sub(r"[^0-9.]", "", text)
    try:
        return float(digits)
    except ValueError:
        return None


def ensure_extension(context: FieldContext) -> Any:
    """Return the line item's extension, creating the channel default when missing."""
    line_item = context.line_item
    if not extension_matches(line_item.channel, line_item.extension):
        line_item.extension = default_extension(line_item.channel)
    return line_item.extension


def _extension(context: FieldContext) -> Any:
    line_item = context.line_item
    return line_item.extension if extension_matches(line_item.channel, line_item.extension) else None


def extension_attribute(attribute: str, coerce: Callable[[Any], Any] = to_text) -> FieldResolver:
    """Resolver for a single attribute of the channel extension."""

    def read(context: FieldContext) -> Any:
        return getattr(_extension(context), attribute, None)

    def write(context: FieldContext, value: Any) -> None:
        setattr(ensure_extension(context), attribute, coerce(value))

    return FieldResolver(read=read, write=write)


def line_item_attribute(attribute: str, coerce: Callable[[Any], Any] = to_text,
                        validate: Optional[Callable[[Any, FieldContext], Optional[str]]] = None) -> FieldResolver:
    def read(context: FieldContext) -> Any:
        return getattr(context.line_item, attribute)

    def write(context: FieldContext, value: Any) -> None:
        setattr(context.line_item, attribute, coerce(value))

    return FieldResolver(read=read, write=write, validate=validate)


# Common columns

def _require_flight(context: FieldContext) -> Flight:
    if context.flight is None:
        raise MissingFlightError(f"Line item {context.line_item.line_item_id} has no flight")
    return context.flight


def _date_validator(attribute: str, label: str) -> Callable[[Any, FieldContext], Optional[str]]:
    def validate(value: Any, context: FieldContext) -> Optional[str]:
        if not value:
            return f"{label} date is required"
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            return f"Invalid {label.lower()} date"
        if context.flight is None:
            return None
        if attribute == "start_date" and parsed > context.flight.end_date:
            return "Start must be before end"
        if attribute == "end_date" and parsed < context.flight.start_date:
            return "End must be after start"
        return None
    return validate


def _date_resolver(attribute: str, label: str) -> FieldResolver:
    def read(context: FieldContext) -> Any:
        return getattr(context.flight, attribute) if context.flight else None

    def write(context: FieldContext, value: Any) -> None:
        if not value:
            raise ValueError(f"{label} date required")
        setattr(_require_flight(context), attribute, parse_iso_date(value))

    return FieldResolver(read=read, write=write, validate=_date_validator(attribute, label))


def _write_vendor_name(context: FieldContext, value: Any) -> None:
    if context.vendor is None:
        raise PlanStructureError(f"Line item {context.line_item.line_item_id} has no vendor")
    context.vendor.name = to_text(value)


def _write_audience_definition(context: FieldContext, value: Any) -> None:
    if context.audience is None:
        raise PlanStructureError(f"Line item {context.line_item.line_item_id} has no audience")
    context.audience.definition = to_text(value)


def _validate_vendor(value: Any, context: FieldContext) -> Optional[str]:
    return None if to_text(value) else "Vendor is required"


def _validate_pricing_model(value: Any, context: FieldContext) -> Optional[str]:
    if not value:
        return "Pricing model is required"
    if value not in [model.value for model in PricingModel] and not isinstance(value, PricingModel):
        return "Invalid pricing model"
    return None


def _is_non_negative_number(value: Any) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number >= 0


def _validate_rate(value: Any, context: FieldContext) -> Optional[str]:
    if value is None or value == "":
        return None if context.line_item.pricing_model == PricingModel.FIXED else "Rate required"
    return None if _is_non_negative_number(value) else "Rate must be non-negative"


def _validate_units(value: Any, context: FieldContext) -> Optional[str]:
    if value is None or value == "":
        return None
    return None if _is_non_negative_number(value) else "Units must be non-negative"


def _validate_cost(value: Any, context: FieldContext) -> Optional[str]:
    if value is None or value == "":
        return "Planned cost required"
    return None if _is_non_negative_number(value) else "Planned cost must be non-negative"


COMMON_RESOLVERS: Dict[str, FieldResolver] = {
    "vendor_platform": FieldResolver(
        read=lambda context: context.vendor.name if context.vendor else None,
        write=_write_vendor_name,
        validate=_validate_vendor
    ),
    "start_date": _date_resolver("start_date", "Start"),
    "end_date": _date_resolver("end_date", "End"),
    "pricing_model": line_item_attribute("pricing_model", PricingModel, _validate_pricing_model),
    "rate": line_item_attribute("rate", to_non_negative, _validate_rate),
    "units_planned": line_item_attribute("units_planned", to_non_negative, _validate_units),
    "planned_cost": line_item_attribute("cost_planned", to_non_negative, _validate_cost),
    "primary_kpi": line_item_attribute("goal_type"),
    "audience_label": FieldResolver(
        read=lambda context: context.audience.definition if context.audience else None,
        write=_write_audience_definition
    ),
}


CHANNEL_RESOLVERS: Dict[Tuple[Channel, str], FieldResolver] = {}


def register_channel_resolver(channels: Iterable[Channel], field_id: str, resolver: FieldResolver) -> None:
    for channel in channels:
        CHANNEL_RESOLVERS[(channel, field_id)] = resolver


# Columns stored directly on the channel extension: field id -> (attribute, coercion)
EXTENSION_COLUMNS: Dict[Tuple[Channel, ...], Dict[str, Tuple[str, Callable[[Any], Any]]]] = {
    (Channel.OOH,): {
        "owner": ("owner", to_text),
        "format": ("format", to_text),
        "weekly_imps": ("weekly_imps", to_non_negative),
    },
    (Channel.TV,): {
        "network_region": ("network", to_text),
        "program_or_daypart": ("program", to_text),
        "spot_length_sec": ("spot_length_sec", to_non_negative_int),
        "spots": ("spot_count", to_non_negative_int),
        "buy_unit": ("buy_unit", to_text),
        "target_demo": ("target_demo", to_text),
    },
    (Channel.BVOD_CTV,): {
        "platform": ("platform", to_text),
        "buy_type": ("buy_type", to_text),
        "pod_position": ("pod_position", to_text),
        "viewability_standard": ("viewability_standard", to_text),
        "ad_duration_sec": ("ad_pod_len", to_non_negative_int),
    },
    (Channel.DIGITAL_DISPLAY, Channel.DIGITAL_VIDEO): {
        "exchange_or_deal": ("deal_id", to_text),
        "inventory_type": ("inventory_type", to_text),
        "brand_safety_tier": ("brand_safety", to_text),
    },
    (Channel.DIGITAL_VIDEO,): {
        "pod_or_position": ("pod_position", to_text),
        "ad_duration_sec": ("video_duration_sec", to_non_negative_int),
        "vcr_goal_pct": ("viewability_goal", percent_from_value),
    },
    (Channel.DIGITAL_DISPLAY,): {
        "viewability_goal_pct": ("viewability_goal", percent_from_value),
    },
    (Channel.SOCIAL,): {
        "platform": ("platform", to_text),
        "objective": ("objective", to_text),
        "format": ("format", to_text),
        "optimization_event": ("optimization_event", to_text),
        "attribution_window": ("attribution_window", to_text),
        "frequency_cap": ("frequency_cap", to_text),
    },
    (Channel.SEARCH,): {
        "engine": ("engine", to_text),
        "campaign_type": ("campaign_type", to_text),
        "match_type": ("match_type", to_text),
        "bid_strategy": ("bid_strategy", to_text),
        "avg_quality_score": ("avg_quality_score", to_non_negative),
    },
    (Channel.RADIO, Channel.STREAMING_AUDIO): {
        "network_or_platform": ("network_or_platform", to_text),
        "station": ("station", to_text),
        "daypart": ("daypart", to_text),
        "spot_length_sec": ("spot_len_sec", to_non_negative_int),
        "spots": ("spots", to_non_negative_int),
        "format_genre": ("format_genre", to_text),
        "cpp_or_cpm": ("cpp_or_cpm", to_non_negative),
    },
    (Channel.PODCAST,): {
        "episode_or_date": ("episode", to_text),
        "ad_position": ("ad_position", to_text),
        "read_type": ("read_type", to_text),
        "insertion_type": ("insertion_type", to_text),
        "est_downloads": ("est_downloads", to_non_negative_int),
    },
    (Channel.CINEMA,): {
        "circuit": ("circuit", to_text),
        "locations_count": ("locations_count", to_non_negative_int),
        "screens_count": ("screens_count", to_non_negative_int),
        "sessions_per_week": ("sessions_per_week", to_non_negative_int),
        "spot_length_sec": ("spot_len_sec", to_non_negative_int),
        "package": ("package", to_text),
    },
    (Channel.PRINT,): {
        "publication": ("publication", to_text),
        "section": ("section", to_text),
        "edition_date": ("edition_date", to_text),
        "ad_size": ("ad_size", to_text),
        "position": ("position", to_text),
        "color_mode": ("color_mode", to_text),
    },
    (Channel.RETAIL_MEDIA,): {
        "retailer": ("retailer", to_text),
        "onsite_format": ("onsite_format", to_text),
        "offsite_format": ("offsite_format", to_text),
        "sku_count": ("sku_count", to_non_negative_int),
        "attribution_source": ("attribution_source", to_text),
        "roas_target": ("roas_target", to_non_negative),
    },
    (Channel.INFLUENCER,): {
        "creator_handle": ("creator_handle", to_text),
        "platform": ("platform", to_text),
        "deliverables_short": ("deliverables_short", to_text),
        "followers_k": ("followers_k", to_non_negative),
        "usage_window_days": ("usage_window_days", to_non_negative_int),
        "whitelisting": ("whitelisting", to_bool),
    },
    (Channel.SPONSORSHIP, Channel.EXPERIENTIAL): {
        "property": ("property", to_text),
        "rights_summary": ("rights_summary", to_text),
        "key_dates": ("key_dates", to_text),
        "assets_count": ("assets_count", to_non_negative_int),
        "makegoods": ("makegoods", to_bool),
    },
    (Channel.EMAIL, Channel.DIRECT_MAIL): {
        "type_email_or_dm": ("channel_type", to_text),
        "platform_or_broker": ("list_source", to_text),
        "audience_size": ("audience_size", to_non_negative_int),
        "send_or_drop_date": ("drop_date", to_text),
        "template_or_format": ("template_id", to_text),
        "seed_or_broker": ("list_broker", to_text),
    },
    (Channel.GAMING, Channel.NATIVE): {
        "subtype": ("subtype", to_text),
        "platform_or_network": ("platform_network", to_text),
        "title_or_publisher": ("title_or_publisher", to_text),
        "ad_format": ("ad_format", to_text),
        "brand_safety": ("brand_safety", to_text),
    },
    (Channel.AFFILIATE,): {
        "network": ("network", to_text),
        "partner": ("partner_id", to_text),
        "commission_model": ("commission_model", to_text),
        "cookie_window_days": ("cookie_window_days", to_non_negative_int),
    },
}

for _channels, _columns in EXTENSION_COLUMNS.items():
    for _field_id, (_attribute, _coerce) in _columns.items():
        register_channel_resolver(_channels, _field_id, extension_attribute(_attribute, _coerce))

register_channel_resolver((Channel.OOH,), "sites", line_item_attribute("units_planned", to_non_negative))


# Composite columns

def _read_ooh_digital(context: FieldContext) -> bool:
    return bool(getattr(_extension(context), "digital", False))


def _validate_ooh_digital(value: Any, context: FieldContext) -> Optional[str]:
    if to_bool(value) and not getattr(_extension(context), "share_of_voice", None):
        return "Add SOV when digital panels are selected"
    return None


def _read_sov_or_loop(context: FieldContext) -> str:
    extension = _extension(context)
    if extension is None:
        return ""
    parts = []
    if extension.share_of_voice is not None:
        parts.append(f"{round_to(extension.share_of_voice * 100, 1):g}%")
    if extension.slot_length_sec is not None:
        parts.append(f"{extension.slot_length_sec:g}s")
    return " / ".join(parts)


def _write_sov_or_loop(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    sov_part, _, loop_part = to_text(value).partition("/")
    share = _leading_number(sov_part)
    extension.share_of_voice = share / 100 if share is not None and share > 1 else share
    extension.slot_length_sec = _leading_number(loop_part)


def _read_facing_orientation(context: FieldContext) -> str:
    extension = _extension(context)
    if extension is None or (not extension.facing and extension.orientation_deg is None):
        return ""
    parts = [extension.facing] if extension.facing else []
    if extension.orientation_deg is not None:
        parts.append(f"{extension.orientation_deg:g}°")
    return " ".join(parts)


def _write_facing_orientation(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    parts = to_text(value).split()
    if parts:
        extension.facing = parts[0]
    orientation = _leading_number(parts[1]) if len(parts) > 1 else None
    if orientation is not None:
        extension.orientation_deg = orientation


def _read_location(context: FieldContext) -> str:
    extension = _extension(context)
    if extension is None:
        return ""
    return ", ".join(part for part in (extension.address, extension.suburb, extension.state) if part)


def _write_location(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    parts = [part.strip() for part in to_text(value).split(",")]
    extension.address = parts[0] if parts else ""
    extension.suburb = parts[1] if len(parts) > 1 else extension.suburb
    if len(parts) > 2 and parts[2]:
        extension.state = parts[2]


def _read_production_install(context: FieldContext) -> float:
    extension = _extension(context)
    if extension is None:
        return 0.0
    return safe_number(extension.production_cost) + safe_number(extension.install_cost)


def _write_production_install(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    half = to_non_negative(value) / 2
    extension.production_cost = half
    extension.install_cost = half


def _read_ctv_share(context: FieldContext) -> Optional[float]:
    extension = _extension(context)
    return extension.device_mix.get("CTV") if extension else None


def _write_ctv_share(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    extension.device_mix = {**extension.device_mix, "CTV": percent_from_value(value)}


def _read_completion_goal(context: FieldContext) -> Optional[float]:
    extension = _extension(context)
    number = _leading_number(extension.completion_goal) if extension else None
    return number / 100 if number is not None else None


def _write_completion_goal(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    extension.completion_goal = f"{int(round_to(percent_from_value(value) * 100, 0))}%"


def _read_creative_sizes(context: FieldContext) -> str:
    extension = _extension(context)
    return ", ".join(extension.creative_sizes) if extension else ""


def _write_creative_sizes(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    extension.creative_sizes = [part.strip() for part in to_text(value).split(",") if part.strip()]


def _read_targeting(context: FieldContext) -> str:
    extension = _extension(context)
    return ", ".join(extension.targeting.keys()) if extension else ""


def _write_targeting(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    extension.targeting = {part.strip(): True for part in to_text(value).split(",") if part.strip()}


def _read_keyword(context: FieldContext) -> str:
    extension = _extension(context)
    if extension is None:
        return ""
    return extension.keyword or extension.ad_group or ""


def _read_publisher_show(context: FieldContext) -> str:
    extension = _extension(context)
    if extension is None:
        return ""
    return " - ".join(part for part in (extension.publisher, extension.show) if part)


def _write_publisher_show(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    publisher, separator, show = to_text(value).partition(" - ")
    extension.publisher = publisher.strip()
    if separator:
        extension.show = show.strip()


def _read_promo_code_count(context: FieldContext) -> int:
    extension = _extension(context)
    return len(extension.promo_codes) if extension else 0


def _write_promo_code_count(context: FieldContext, value: Any) -> None:
    extension = ensure_extension(context)
    count = to_non_negative_int(value)
    existing = extension.promo_codes
    extension.promo_codes = [existing[index] if index < len(existing) else "" for index in range(count)]


register_channel_resolver((Channel.OOH,), "digital", FieldResolver(
    read=_read_ooh_digital,
    write=lambda context, value: setattr(ensure_extension(context), "digital", to_bool(value)),
    validate=_validate_ooh_digital
))
register_channel_resolver((Channel.OOH,), "sov_or_loop", FieldResolver(_read_sov_or_loop, _write_sov_or_loop))
register_channel_resolver((Channel.OOH,), "facing_orientation",
                          FieldResolver(_read_facing_orientation, _write_facing_orientation))
register_channel_resolver((Channel.OOH,), "location", FieldResolver(_read_location, _write_location))
register_channel_resolver((Channel.OOH,), "production_install_fees",
                          FieldResolver(_read_production_install, _write_production_install))
register_channel_resolver((Channel.BVOD_CTV,), "device_mix_ctv_pct", FieldResolver(_read_ctv_share, _write_ctv_share))
register_channel_resolver((Channel.BVOD_CTV,), "vcr_goal_pct",
                          FieldResolver(_read_completion_goal, _write_completion_goal))
register_channel_resolver((Channel.DIGITAL_DISPLAY,), "creative_sizes",
                          FieldResolver(_read_creative_sizes, _write_creative_sizes))
register_channel_resolver((Channel.DIGITAL_DISPLAY,), "targeting_short", FieldResolver(_read_targeting, _write_targeting))
register_channel_resolver((Channel.SEARCH,), "keyword_or_group", FieldResolver(
    read=_read_keyword,
    write=lambda context, value: setattr(ensure_extension(context), "keyword", to_text(value))
))
register_channel_resolver((Channel.PODCAST,), "publisher_show", FieldResolver(_read_publisher_show, _write_publisher_show))
register_channel_resolver((Channel.AFFILIATE,), "promo_codes_count",
                          FieldResolver(_read_promo_code_count, _write_promo_code_count))


# Registry access

def get_field_resolver(channel: Channel, field_id: str) -> Optional[FieldResolver]:
    """Channel-specific resolver, else the shared one, else None (read-only)."""
    return CHANNEL_RESOLVERS.get((channel, field_id)) or COMMON_RESOLVERS.get(field_id)


def list_fields_for_channel(channel: Channel) -> List[str]:
    channel_fields = [field_id for (owner, field_id) in CHANNEL_RESOLVERS if owner == channel]
    return list(COMMON_RESOLVERS) + channel_fields


def get_field_value(channel: Channel, context: FieldContext, field_id: str) -> Any:
    resolver = get_field_resolver(channel, field_id)
    if resolver is None:
        return None
    return resolver.read(context)


def validate_field(channel: Channel, context: FieldContext, field_id: str, value: Any) -> Optional[str]:
    """Return a message describing why ``value`` is not acceptable, or None."""
    resolver = get_field_resolver(channel, field_id)
    if resolver is None or resolver.validate is None:
        return None
    return resolver.validate(value, context)


def set_field_value(channel: Channel, context: FieldContext, field_id: str, value: Any) -> FieldContext:
    """
    Write a column value on a copy of the plan.

    Date writes re-sync the line item's block plan to its flight.

    Args:
        channel: Channel whose column is edited
        context: Context over the current plan
        field_id: Column id
        value: New value, normalized by the resolver

    Returns:
        Context over the updated plan copy

    Raises:
        ReadOnlyFieldError: If the column has no write resolver for the channel
        MissingFlightError: If a date is written on a line item without a flight
        PlanStructureError: If the line item is no longer in the plan
    """
    resolver = get_field_resolver(channel, field_id)
    if resolver is None or resolver.write is None:
        raise ReadOnlyFieldError(f"Field {field_id} is read-only or not configured for {channel.value}")

    draft = build_field_context(copy.deepcopy(context.plan), context.line_item.line_item_id)
    resolver.write(draft, value)
    logger.debug(f"Set {field_id} on {draft.line_item.line_item_id}")

    if field_id in DATE_FIELDS:
        synced = sync_block_plan_to_flight(draft.plan, draft.line_item.line_item_id)
        return build_field_context(synced, draft.line_item.line_item_id)
    return draft
