"""Unit conversion, formatting and file utilities shared by the commands."""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation, localcontext
from pathlib import Path
from typing import Any, Dict, Union

from rich.console import Console
from rich.table import Table

from crowdfund_toolkit.shared.constants import GlobalConstants
from crowdfund_toolkit.shared.exceptions import FormatError

# Shared console instance
console = Console()

RawAmount = Union[int, str]


def _parse_base_units(raw: Any) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(raw, bool):
        raise FormatError(f"Not an amount: {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            if text.lower().startswith("0x"):
                value = int(text, 16)
            elif text.isdigit():
                value = int(text)
            else:
                raise ValueError(text)
        except ValueError:
            raise FormatError(f"Not a base-unit amount: {raw!r}") from None
    else:
        raise FormatError(f"Unsupported amount type: {type(raw).__name__}")

    if value < 0:
        raise FormatError(f"Negative amount: {raw!r}")
    return value


def format_decimal(value: Decimal) -> str:
    """Render a Decimal without exponent or trailing zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def to_display_amount(
    raw: RawAmount, decimals: int = GlobalConstants.BASE_UNIT_DECIMALS
) -> str:
    """
    Convert a base-unit amount to its display-unit decimal string.

    Args:
        raw: Integer, digit string or 0x-prefixed hex string in base units
        decimals: Number of decimals of the unit (18 for ether)

    Returns:
        Exact decimal string, e.g. "1.5" for 1500000000000000000

    Raises:
        FormatError: The value is not a non-negative integer amount
    """
    value = _parse_base_units(raw)
    whole, fraction = divmod(value, 10**decimals)
    if not fraction:
        return str(whole)
    digits = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{digits}"


def to_base_units(
    amount: Union[str, int, Decimal],
    decimals: int = GlobalConstants.BASE_UNIT_DECIMALS,
) -> int:
    """
    Convert a display-unit amount typed by a user to base units.

    Raises:
        FormatError: Unparseable, negative, or more precise than the unit
    """
    if isinstance(amount, (bool, float)):
        raise FormatError(f"Unsupported amount type: {type(amount).__name__}")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise FormatError(f"Not a number: {amount!r}") from None

    if not value.is_finite():
        raise FormatError(f"Not a finite amount: {amount!r}")
    if value < 0:
        raise FormatError(f"Negative amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise FormatError(
            f"Amount {amount!r} has more than {decimals} decimal places"
        )
    return int(scaled)


def format_amount(value: Any, places: int = 4) -> str:
    """
    Format a display-unit amount with a fixed number of decimal places.

    Returns "0.0000" (for the default places) when the value is unparseable.
    """
    try:
        number = Decimal(str(value).strip())
        if not number.is_finite():
            raise InvalidOperation
    except InvalidOperation:
        number = Decimal(0)
    return f"{number:.{places}f}"


def format_address(address: str, length: int = 10) -> str:
    """
    Format an address to show its first and last characters.

    Returns:
        Formatted address like "0x1234...5678"
    """
    if not address:
        return "N/A"
    if len(address) <= length:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_timestamp(
    timestamp: int, format_str: str = "%Y-%m-%d %H:%M"
) -> str:
    """Format a Unix timestamp as a local date string."""
    return datetime.fromtimestamp(timestamp).strftime(format_str)


def generate_timestamped_filename(prefix: str, extension: str = "json") -> str:
    """
    Generate a filename with timestamp.

    Returns:
        Filename like "prefix_20240315_123456.json"
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"


def save_json_output(
    data: Any,
    filename: str,
    output_dir: str = "output",
    print_path: bool = True,
) -> str:
    """
    Save data to a JSON file, creating the output directory if needed.

    Returns:
        Full path to the saved file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    filepath = output_path / filename
    with open(filepath, "w") as f:
        json.dump(data, f, indent=2)

    if print_path:
        console.print(f"[cyan]Data saved to:[/cyan] {filepath}")

    return str(filepath)


_STATUS_STYLES: Dict[str, str] = {
    "active": "green",
    "completed": "bold cyan",
    "expired": "yellow",
    "withdrawn": "dim",
}


def format_status_display(status: str) -> str:
    """Rich markup for a campaign status value."""
    style = _STATUS_STYLES.get(status, "white")
    return f"[{style}]{status.capitalize()}[/{style}]"


def create_campaigns_table() -> Table:
    """Create a Rich table with the standard campaign columns."""
    table = Table(
        show_header=True,
        header_style="bold cyan",
        show_lines=False,
        pad_edge=False,
        box=None,
    )
    table.add_column("ID", width=4, justify="right")
    table.add_column("Title", width=28)
    table.add_column("Owner", width=13)
    table.add_column("Raised", width=12, justify="right")
    table.add_column("Target", width=12, justify="right")
    table.add_column("Progress", width=9, justify="right")
    table.add_column("Status", width=11, justify="center")
    table.add_column("Days left", width=9, justify="right")
    return table


def add_campaign_to_table(table: Table, campaign: Dict[str, Any]) -> None:
    """
    Add a campaign row to the campaigns table.

    Args:
        table: Rich Table to add the row to
        campaign: Serialized campaign (see Campaign.to_dict) with an extra
            ``days_left`` entry
    """
    title = campaign["title"]
    if len(title) > 28:
        title = title[:27] + "…"

    table.add_row(
        str(campaign["id"]),
        title,
        format_address(campaign["owner"]),
        format_amount(campaign["amount_collected"]),
        format_amount(campaign["target"]),
        f"{campaign['progress']:.1f}%",
        format_status_display(campaign["status"]),
        str(campaign.get("days_left", 0)),
    )
