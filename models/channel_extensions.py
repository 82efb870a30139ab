"""
Channel-specific extension payloads for line items.

Each line item carries at most one extension object. The line item's channel
is the tag that decides which extension class is valid for it, so looking up
an extension is a single table read instead of probing every optional field.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union


class Channel(Enum):
    """Line item channels."""
    OOH = "OOH"
    TV = "TV"
    BVOD_CTV = "BVOD_CTV"
    DIGITAL_DISPLAY = "Digital_Display"
    DIGITAL_VIDEO = "Digital_Video"
    SOCIAL = "Social"
    SEARCH = "Search"
    RADIO = "Radio"
    STREAMING_AUDIO = "Streaming_Audio"
    PODCAST = "Podcast"
    CINEMA = "Cinema"
    PRINT = "Print"
    RETAIL_MEDIA = "Retail_Media"
    INFLUENCER = "Influencer"
    SPONSORSHIP = "Sponsorship"
    EMAIL = "Email"
    DIRECT_MAIL = "Direct_Mail"
    GAMING = "Gaming"
    NATIVE = "Native"
    AFFILIATE = "Affiliate"
    EXPERIENTIAL = "Experiential"


@dataclass
class OohExtension:
    """Out-of-home site details."""
    ooh_asset_id: str = ""
    owner: str = ""
    format: str = ""
    digital: bool = False
    address: str = ""
    suburb: str = ""
    state: str = "NSW"
    postcode: str = ""
    lat: float = 0.0
    long: float = 0.0
    weekly_imps: Optional[float] = None
    share_of_voice: Optional[float] = None
    slot_length_sec: Optional[float] = None
    facing: Optional[str] = None
    orientation_deg: Optional[float] = None
    production_cost: float = 0.0
    install_cost: float = 0.0


@dataclass
class TvExtension:
    """Broadcast TV buy details."""
    network: str = ""
    program: str = ""
    spot_length_sec: int = 30
    spot_count: int = 0
    buy_unit: str = "spot"
    target_demo: str = ""


@dataclass
class BvodExtension:
    """BVOD / connected TV buy details."""
    platform: str = ""
    buy_type: str = "audience"
    pod_position: str = ""
    viewability_standard: str = ""
    device_mix: Dict[str, float] = field(default_factory=dict)
    ad_pod_len: int = 0
    completion_goal: str = ""


@dataclass
class DigitalExtension:
    """Programmatic display and video details."""
    inventory_type: str = "display"
    deal_id: str = ""
    creative_sizes: List[str] = field(default_factory=list)
    targeting: Dict[str, bool] = field(default_factory=dict)
    brand_safety: str = ""
    pod_position: str = ""
    viewability_goal: Optional[float] = None
    video_duration_sec: int = 0


@dataclass
class SocialExtension:
    platform: str = ""
    objective: str = ""
    format: str = ""
    optimization_event: str = ""
    attribution_window: str = ""
    frequency_cap: str = ""


@dataclass
class SearchExtension:
    engine: str = "Google"
    campaign_type: str = "Search"
    ad_group: str = "Default"
    keyword: Optional[str] = None
    match_type: str = ""
    bid_strategy: str = ""
    avg_quality_score: Optional[float] = None


@dataclass
class AudioExtension:
    """Radio and streaming audio details."""
    network_or_platform: str = ""
    station: str = ""
    daypart: str = ""
    spot_len_sec: int = 30
    spots: int = 0
    format_genre: str = ""
    cpp_or_cpm: Optional[float] = None


@dataclass
class PodcastExtension:
    publisher: str = ""
    show: str = ""
    episode: str = ""
    ad_position: str = ""
    read_type: str = ""
    insertion_type: str = ""
    est_downloads: int = 0


@dataclass
class CinemaExtension:
    circuit: str = ""
    locations_count: int = 0
    screens_count: int = 0
    sessions_per_week: int = 0
    spot_len_sec: int = 30
    package: str = ""


@dataclass
class PrintExtension:
    publication: str = ""
    section: str = ""
    edition_date: Optional[str] = None
    ad_size: str = ""
    position: str = ""
    color_mode: str = ""


@dataclass
class RetailMediaExtension:
    retailer: str = ""
    onsite_format: str = ""
    offsite_format: str = ""
    sku_count: int = 0
    attribution_source: str = ""
    roas_target: Optional[float] = None


@dataclass
class InfluencerExtension:
    creator_handle: str = ""
    platform: str = ""
    deliverables_short: str = ""
    followers_k: Optional[float] = None
    usage_window_days: int = 0
    whitelisting: bool = False


@dataclass
class SponsorshipExtension:
    """Sponsorship and experiential rights."""
    property: str = ""
    rights_summary: str = ""
    key_dates: str = ""
    assets_count: int = 0
    makegoods: bool = False


@dataclass
class EmailDmExtension:
    """Email and direct mail drops."""
    channel_type: str = "email"
    list_source: str = ""
    audience_size: int = 0
    drop_date: Optional[str] = None
    template_id: str = ""
    list_broker: str = ""


@dataclass
class GamingNativeExtension:
    subtype: str = "gaming"
    platform_network: str = ""
    title_or_publisher: str = ""
    ad_format: str = ""
    brand_safety: str = ""


@dataclass
class AffiliateExtension:
    network: str = ""
    partner_id: str = ""
    commission_model: str = "CPS"
    cookie_window_days: int = 0
    promo_codes: List[str] = field(default_factory=list)


ChannelExtension = Union[
    OohExtension,
    TvExtension,
    BvodExtension,
    DigitalExtension,
    SocialExtension,
    SearchExtension,
    AudioExtension,
    PodcastExtension,
    CinemaExtension,
    PrintExtension,
    RetailMediaExtension,
    InfluencerExtension,
    SponsorshipExtension,
    EmailDmExtension,
    GamingNativeExtension,
    AffiliateExtension,
]


EXTENSION_BY_CHANNEL: Dict[Channel, Type] = {
    Channel.OOH: OohExtension,
    Channel.TV: TvExtension,
    Channel.BVOD_CTV: BvodExtension,
    Channel.DIGITAL_DISPLAY: DigitalExtension,
    Channel.DIGITAL_VIDEO: DigitalExtension,
    Channel.SOCIAL: SocialExtension,
    Channel.SEARCH: SearchExtension,
    Channel.RADIO: AudioExtension,
    Channel.STREAMING_AUDIO: AudioExtension,
    Channel.PODCAST: PodcastExtension,
    Channel.CINEMA: CinemaExtension,
    Channel.PRINT: PrintExtension,
    Channel.RETAIL_MEDIA: RetailMediaExtension,
    Channel.INFLUENCER: InfluencerExtension,
    Channel.SPONSORSHIP: SponsorshipExtension,
    Channel.EMAIL: EmailDmExtension,
    Channel.DIRECT_MAIL: EmailDmExtension,
    Channel.GAMING: GamingNativeExtension,
    Channel.NATIVE: GamingNativeExtension,
    Channel.AFFILIATE: AffiliateExtension,
    Channel.EXPERIENTIAL: SponsorshipExtension,
}


def extension_class_for(channel: Channel) -> Optional[Type]:
    """Return the extension class that is valid for a channel."""
    return EXTENSION_BY_CHANNEL.get(channel)


def default_extension(channel: Channel) -> Optional[Any]:
    """Create an empty extension for a channel, or None if it has none."""
    extension_cls = extension_class_for(channel)
    return extension_cls() if extension_cls else None


def extension_matches(channel: Channel, extension: Optional[Any]) -> bool:
    """Check that an extension object is the variant the channel expects."""
    if extension is None:
        return False
    extension_cls = extension_class_for(channel)
    return extension_cls is not None and isinstance(extension, extension_cls)


def extension_from_dict(channel: Channel, data: Optional[Dict[str, Any]]) -> Optional[Any]:
    """
    Build a channel's extension from a plain dictionary.

    Unknown keys are dropped so records written by newer schema versions
    still load.

    Args:
        channel: Channel tag selecting the extension variant
        data: Raw extension fields

    Returns:
        Extension instance, or None if the channel has no extension or data is empty
    """
    extension_cls = extension_class_for(channel)
    if extension_cls is None or not data:
        return None
    known = {f.name for f in fields(extension_cls)}
    return extension_cls(**{key: value for key, value in data.items() if key in known})
