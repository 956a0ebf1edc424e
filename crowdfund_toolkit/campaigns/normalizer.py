"""
Record normalizer.

Turns one raw ledger record (a mapping keyed by the struct field names)
into a display-ready Campaign. Each field is converted on its own, so a
malformed field falls back to a default instead of losing the record.
Only the campaign id is essential.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from crowdfund_toolkit.campaigns.models import (
    PLACEHOLDER_DESCRIPTION,
    PLACEHOLDER_IMAGE,
    PLACEHOLDER_OWNER,
    PLACEHOLDER_TITLE,
    Campaign,
)
from crowdfund_toolkit.shared.constants import GlobalConstants
from crowdfund_toolkit.shared.exceptions import FormatError
from crowdfund_toolkit.shared.logging import get_logger
from crowdfund_toolkit.utils.formatters import to_display_amount

logger = get_logger(__name__)

# Ledger field name -> snake_case alias
_ALIASES = {
    "imageUrl": "image_url",
    "amountCollected": "amount_collected",
}


def normalize_amount(
    value: Any, decimals: int = GlobalConstants.BASE_UNIT_DECIMALS
) -> str:
    """
    Convert an amount of unknown shape to a display-unit string.

    Integers, digit strings and hex strings are base units. A string with a
    decimal point is taken as already in display units. Anything else
    becomes "0". Never raises.
    """
    if isinstance(value, str) and "." in value:
        text = value.strip()
        try:
            Decimal(text)
        except InvalidOperation:
            return "0"
        return text

    try:
        return to_display_amount(value, decimals)
    except FormatError:
        return "0"


def _field(raw: Mapping[str, Any], name: str) -> Any:
    if name in raw:
        return raw[name]
    return raw.get(_ALIASES.get(name, name))


def _text(value: Any, placeholder: str) -> str:
    if value is None:
        return placeholder
    text = str(value).strip()
    return text or placeholder


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise FormatError(f"Not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            pass
    raise FormatError(f"Not an integer: {value!r}")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value]


def normalize_record(
    raw: Mapping[str, Any], fallback_id: Optional[int] = None
) -> Campaign:
    """
    Normalize one raw record.

    Args:
        raw: Mapping keyed by ledger field names (or snake_case aliases)
        fallback_id: Id to use when the record's own id is unparseable,
            typically the index it was read at

    Returns:
        Campaign in display units with placeholders for missing text

    Raises:
        FormatError: raw is not a mapping, or it has no usable id and no
            fallback was given
    """
    if not isinstance(raw, Mapping):
        raise FormatError(f"Record is not a mapping: {type(raw).__name__}")

    try:
        campaign_id = _parse_int(_field(raw, "id"))
    except FormatError:
        if fallback_id is None:
            raise
        campaign_id = fallback_id

    try:
        deadline = _parse_int(_field(raw, "deadline"))
    except FormatError:
        deadline = 0

    donators = _string_list(_field(raw, "donators"))
    raw_donations = _field(raw, "donations")
    donations = (
        [normalize_amount(d) for d in raw_donations]
        if isinstance(raw_donations, (list, tuple))
        else []
    )
    if len(donators) != len(donations):
        logger.warning(
            f"Campaign {campaign_id}: {len(donators)} donators but "
            f"{len(donations)} donations"
        )

    return Campaign(
        id=campaign_id,
        title=_text(_field(raw, "title"), PLACEHOLDER_TITLE),
        description=_text(_field(raw, "description"), PLACEHOLDER_DESCRIPTION),
        image_url=_text(_field(raw, "imageUrl"), PLACEHOLDER_IMAGE),
        owner=_text(_field(raw, "owner"), PLACEHOLDER_OWNER),
        target=normalize_amount(_field(raw, "target")),
        deadline=deadline,
        amount_collected=normalize_amount(_field(raw, "amountCollected")),
        withdrawn=_parse_bool(_field(raw, "withdrawn")),
        donators=donators,
        donations=donations,
    )
