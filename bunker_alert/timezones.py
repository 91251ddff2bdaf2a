"""Timezone abbreviation lookup for display purposes."""

import logging
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Abbreviation -> IANA name. Ambiguous abbreviations (IST, CST, GST, ...)
# resolve to the most populous region; use the full IANA name otherwise.
TIMEZONE_ABBREVIATIONS: dict[str, str] = {
    # Universal
    "UTC": "UTC",
    "GMT": "Europe/London",

    # Europe
    "WET": "Europe/Lisbon",
    "WEST": "Europe/Lisbon",
    "CET": "Europe/Berlin",
    "CEST": "Europe/Berlin",
    "MET": "Europe/Berlin",
    "MEST": "Europe/Berlin",
    "EET": "Europe/Bucharest",
    "EEST": "Europe/Bucharest",
    "BST": "Europe/London",
    "IST": "Asia/Kolkata",
    "MSK": "Europe/Moscow",
    "SAMT": "Europe/Samara",
    "YEKT": "Asia/Yekaterinburg",
    "GET": "Asia/Tbilisi",
    "AZT": "Asia/Baku",
    "AMT": "Asia/Yerevan",
    "FET": "Europe/Minsk",
    "TRT": "Europe/Istanbul",

    # North America
    "NST": "America/St_Johns",
    "NDT": "America/St_Johns",
    "AST": "America/Halifax",
    "ADT": "America/Halifax",
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "AKST": "America/Anchorage",
    "AKDT": "America/Anchorage",
    "HST": "Pacific/Honolulu",
    "HAST": "Pacific/Honolulu",
    "HADT": "America/Adak",

    # Central America / Caribbean
    "CST6": "America/Costa_Rica",
    "ECT": "America/Guayaquil",
    "COT": "America/Bogota",
    "VET": "America/Caracas",
    "PET": "America/Lima",
    "CIDST": "America/Cayman",
    "CUT": "America/Havana",

    # South America
    "BRT": "America/Sao_Paulo",
    "BRST": "America/Sao_Paulo",
    "ART": "America/Argentina/Buenos_Aires",
    "CLT": "America/Santiago",
    "CLST": "America/Santiago",
    "UYT": "America/Montevideo",
    "PYT": "America/Asuncion",
    "PYST": "America/Asuncion",
    "BOT": "America/La_Paz",
    "GFT": "America/Cayenne",
    "SRT": "America/Paramaribo",
    "GYT": "America/Guyana",
    "FKT": "Atlantic/Stanley",

    # East Asia
    "JST": "Asia/Tokyo",
    "KST": "Asia/Seoul",
    "CST8": "Asia/Shanghai",
    "HKT": "Asia/Hong_Kong",
    "TWT": "Asia/Taipei",
    "PHT": "Asia/Manila",
    "PHST": "Asia/Manila",
    "MYT": "Asia/Kuala_Lumpur",
    "SGT": "Asia/Singapore",
    "BNT": "Asia/Brunei",

    # Southeast Asia
    "ICT": "Asia/Bangkok",
    "WIB": "Asia/Jakarta",
    "WITA": "Asia/Makassar",
    "WIT": "Asia/Jayapura",
    "MMT": "Asia/Yangon",

    # South Asia
    "PKT": "Asia/Karachi",
    "NPT": "Asia/Kathmandu",
    "BST5": "Asia/Dhaka",
    "MVT": "Indian/Maldives",
    "LKT": "Asia/Colombo",

    # Central Asia
    "ALMT": "Asia/Almaty",
    "QYZT": "Asia/Qyzylorda",
    "ORAT": "Asia/Oral",
    "UZT": "Asia/Tashkent",
    "TMT": "Asia/Ashgabat",
    "TJT": "Asia/Dushanbe",
    "KGT": "Asia/Bishkek",

    # West / Central Asia
    "AFT": "Asia/Kabul",
    "IRST": "Asia/Tehran",
    "IRDT": "Asia/Tehran",
    "GST": "Asia/Dubai",

    # Middle East
    "AST3": "Asia/Riyadh",
    "IDT": "Asia/Jerusalem",

    # Australia
    "AEST": "Australia/Sydney",
    "AEDT": "Australia/Sydney",
    "ACST": "Australia/Adelaide",
    "ACDT": "Australia/Adelaide",
    "AWST": "Australia/Perth",
    "LHST": "Australia/Lord_Howe",
    "LHDT": "Australia/Lord_Howe",
    "NFDT": "Pacific/Norfolk",
    "CXT": "Indian/Christmas",
    "CCT": "Indian/Cocos",

    # Pacific
    "NZST": "Pacific/Auckland",
    "NZDT": "Pacific/Auckland",
    "CHAST": "Pacific/Chatham",
    "CHADT": "Pacific/Chatham",
    "FJT": "Pacific/Fiji",
    "FJST": "Pacific/Fiji",
    "TVT": "Pacific/Funafuti",
    "WST": "Pacific/Apia",
    "TOT": "Pacific/Tongatapu",
    "GILT": "Pacific/Tarawa",
    "MHT": "Pacific/Majuro",
    "PONT": "Pacific/Pohnpei",
    "KOST": "Pacific/Kosrae",
    "CHUT": "Pacific/Chuuk",
    "VUT": "Pacific/Efate",
    "SBT": "Pacific/Guadalcanal",
    "NCT": "Pacific/Noumea",
    "PGT": "Pacific/Port_Moresby",
    "NRT": "Pacific/Nauru",
    "SST": "Pacific/Pago_Pago",
    "TAHT": "Pacific/Tahiti",
    "CKT": "Pacific/Rarotonga",
    "NUT": "Pacific/Niue",
    "TKT": "Pacific/Fakaofo",
    "GALT": "Pacific/Galapagos",
    "MART": "Pacific/Marquesas",
    "GAMT": "Pacific/Gambier",
    "WAKT": "Pacific/Wake",

    # Africa
    "CAT": "Africa/Johannesburg",
    "SAST": "Africa/Johannesburg",
    "EAT": "Africa/Nairobi",
    "WAT": "Africa/Lagos",
    "WAST": "Africa/Windhoek",
    "MUT": "Indian/Mauritius",
    "RET": "Indian/Reunion",
    "SCT": "Indian/Mahe",
    "CVT": "Atlantic/Cape_Verde",

    # Atlantic
    "AZOT": "Atlantic/Azores",
    "AZOST": "Atlantic/Azores",
    "FNT": "America/Noronha",
    "PMST": "America/Miquelon",
    "PMDT": "America/Miquelon",
    "WGT": "America/Godthab",
    "WGST": "America/Godthab",
    "EGT": "America/Scoresbysund",
    "EGST": "America/Scoresbysund",
}


def local_timezone() -> tzinfo:
    """The system's local timezone."""
    return datetime.now().astimezone().tzinfo


def _load_zone(name: str) -> tzinfo | None:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def resolve_timezone(name: str | None) -> tzinfo:
    """
    Resolve an abbreviation or IANA name to a tzinfo.

    Empty input gives the local system timezone. Unknown names log a
    warning and fall back to local time as well.
    """
    if not name:
        return local_timezone()

    iana = TIMEZONE_ABBREVIATIONS.get(name.upper())
    if iana:
        zone = _load_zone(iana)
        if zone is not None:
            return zone

    zone = _load_zone(name)
    if zone is not None:
        return zone

    logger.warning(f"Unknown timezone '{name}', falling back to local system timezone")
    return local_timezone()


def timezone_name(tz: tzinfo) -> str:
    """Short display name: the IANA key when there is one."""
    key = getattr(tz, "key", None)
    if key:
        return key
    return tz.tzname(None) or str(tz)


def format_local_time(moment: datetime | None, tz: tzinfo, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format an instant in the display timezone, 'never' when unset."""
    if moment is None:
        return "never"
    return moment.astimezone(tz).strftime(fmt)
