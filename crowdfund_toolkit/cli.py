#!/usr/bin/env python3
"""
Unified CLI for the Crowdfund Toolkit.

Examples:
  - Read
    crowdfund campaigns-list [--status active] [--search water] [--owner 0x...] [--sort progress] [--json]
    crowdfund campaign-show --campaign-id 3
    crowdfund campaign-donations --campaign-id 3
    crowdfund platform-info

  - Write (needs CF_WALLET_RPC_URL and CF_PRIVATE_KEY)
    crowdfund campaign-create --title "Clean water" --description "..." --target 1.5 --deadline 2030-01-01T12:00 --image-url ipfs://Qm...
    crowdfund campaign-donate --campaign-id 3 --amount 0.05
    crowdfund campaign-withdraw --campaign-id 3

  - Images (needs CF_PINATA_API_KEY and CF_PINATA_API_SECRET)
    crowdfund image-upload --file ./cover.png
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from crowdfund_toolkit.campaigns.models import CampaignStatus
from crowdfund_toolkit.campaigns.service import CampaignService
from crowdfund_toolkit.campaigns.writer import (
    CampaignWriter,
    WriteResult,
    validate_campaign_form,
)
from crowdfund_toolkit.commands.validation import (
    validate_campaign_id,
    validate_chain_id,
    validate_eth_address,
)
from crowdfund_toolkit.shared.constants import CrowdfundConfig
from crowdfund_toolkit.shared.exceptions import ValidationError
from crowdfund_toolkit.shared.services.http_client import aclose_async_client
from crowdfund_toolkit.shared.services.ipfs_service import (
    PinataService,
    safe_image_url,
)
from crowdfund_toolkit.shared.services.wallet import Wallet
from crowdfund_toolkit.utils.campaign_utils import (
    SORT_KEYS,
    can_withdraw,
    compute_campaign_stats,
    filter_by_status,
    is_owner,
    paginate,
    search_campaigns,
    sort_campaigns,
)
from crowdfund_toolkit.utils.formatters import (
    add_campaign_to_table,
    console,
    create_campaigns_table,
    format_address,
    format_amount,
    format_status_display,
    format_timestamp,
    generate_timestamped_filename,
    save_json_output,
)

STATUS_CHOICES = [s.value for s in CampaignStatus]


def _load_config() -> CrowdfundConfig:
    config = CrowdfundConfig.from_env()
    validate_chain_id(config.chain_id)
    return config


def _print_write_result(result: WriteResult, action: str) -> None:
    if result.rejected:
        console.print(f"[yellow]{action} cancelled: signature rejected.[/yellow]")
        return
    console.print(f"[green]{action} confirmed[/green] tx {result.tx_hash}")


def cmd_campaigns_list(args: argparse.Namespace) -> None:
    async def run():
        owner = (
            validate_eth_address(args.owner, "owner") if args.owner else None
        )
        service = CampaignService(config=_load_config())
        result = await service.fetch_campaigns_with_retry()
        campaigns = result.data or []

        if args.search:
            campaigns = search_campaigns(campaigns, args.search)
        if owner:
            campaigns = [c for c in campaigns if is_owner(c, owner)]
        if args.status:
            campaigns = filter_by_status(campaigns, CampaignStatus(args.status))
        campaigns = sort_campaigns(campaigns, args.sort)

        if args.json:
            filename = args.output or generate_timestamped_filename(
                "campaigns"
            )
            save_json_output(
                {
                    "campaigns": [c.to_dict() for c in campaigns],
                    "stats": compute_campaign_stats(campaigns).to_dict(),
                    "skipped": [w.to_dict() for w in result.warnings],
                },
                filename,
            )
            return

        page, total_pages = paginate(campaigns, args.page)
        table = create_campaigns_table()
        for campaign in page:
            row = dict(campaign.to_dict())
            row["days_left"] = campaign.days_left()
            add_campaign_to_table(table, row)
        console.print(table)

        stats = compute_campaign_stats(campaigns)
        console.print(
            f"{stats.total_campaigns} campaigns, "
            f"{stats.active_campaigns} active, "
            f"{format_amount(stats.total_raised)} ETH raised "
            f"(page {args.page}/{max(total_pages, 1)})"
        )
        if result.has_warnings():
            console.print(
                f"[yellow]{len(result.warnings)} campaigns could not be "
                "loaded[/yellow]"
            )

    asyncio.run(run())


def cmd_campaign_show(args: argparse.Namespace) -> None:
    async def run():
        campaign_id = validate_campaign_id(args.campaign_id)
        service = CampaignService(config=_load_config())
        campaign = await service.get_campaign(campaign_id)

        if args.json:
            filename = args.output or f"campaign_{campaign_id}.json"
            save_json_output(campaign.to_dict(), filename)
            return

        status = campaign.status()
        console.print(f"[bold]#{campaign.id} {campaign.title}[/bold]")
        console.print(campaign.description)
        console.print(f"Owner:    {campaign.owner}")
        console.print(f"Image:    {safe_image_url(campaign.image_url)}")
        console.print(
            f"Raised:   {format_amount(campaign.amount_collected)} / "
            f"{format_amount(campaign.target)} ETH "
            f"({campaign.progress():.1f}%)"
        )
        console.print(
            f"Deadline: {format_timestamp(campaign.deadline)} "
            f"({campaign.days_left()} days left)"
        )
        console.print(f"Status:   {format_status_display(status.value)}")
        console.print(f"Donations: {len(campaign.donators)}")

    asyncio.run(run())


def cmd_campaign_donations(args: argparse.Namespace) -> None:
    async def run():
        campaign_id = validate_campaign_id(args.campaign_id)
        service = CampaignService(config=_load_config())
        donations = await service.get_donations(campaign_id)

        if args.json:
            filename = args.output or f"donations_{campaign_id}.json"
            save_json_output(
                {
                    "campaign_id": campaign_id,
                    "donations": [
                        {"donator": d.donator, "amount": d.amount}
                        for d in donations
                    ],
                },
                filename,
            )
            return

        console.print(f"Donations to campaign #{campaign_id}: {len(donations)}")
        for d in donations:
            console.print(
                f"- {format_address(d.donator)} | {format_amount(d.amount)} ETH"
            )

    asyncio.run(run())


def cmd_platform_info(args: argparse.Namespace) -> None:
    async def run():
        service = CampaignService(config=_load_config())
        info = await service.get_platform_info()

        if args.json:
            save_json_output(info, args.output or "platform_info.json")
            return

        console.print(f"Network:   {info['chain_name']} ({info['chain_id']})")
        console.print(f"Contract:  {info['contract_address']}")
        console.print(f"Admin:     {info['admin']}")
        console.print(f"Fee:       {info['platform_fee_percent']}%")
        console.print(f"Campaigns: {info['total_campaigns']}")

    asyncio.run(run())


def cmd_campaign_create(args: argparse.Namespace) -> None:
    async def run():
        draft = validate_campaign_form(
            args.title,
            args.description,
            args.target,
            args.deadline,
            args.image_url,
        )
        writer = CampaignWriter(Wallet.from_env(), config=_load_config())
        result = await writer.create_campaign(draft)
        _print_write_result(result, "Campaign creation")
        if result.campaign_id is not None:
            console.print(f"New campaign id: {result.campaign_id}")

    asyncio.run(run())


def cmd_campaign_donate(args: argparse.Namespace) -> None:
    async def run():
        campaign_id = validate_campaign_id(args.campaign_id)
        writer = CampaignWriter(Wallet.from_env(), config=_load_config())
        result = await writer.donate(campaign_id, args.amount)
        _print_write_result(result, "Donation")

    asyncio.run(run())


def cmd_campaign_withdraw(args: argparse.Namespace) -> None:
    async def run():
        campaign_id = validate_campaign_id(args.campaign_id)
        config = _load_config()
        wallet = Wallet.from_env()

        service = CampaignService(config=config, wallet=wallet)
        campaign = await service.get_campaign(campaign_id)
        if not can_withdraw(campaign, wallet.address):
            message = "This campaign cannot be withdrawn by the connected wallet"
            raise ValidationError(message, errors={"campaign": message})

        writer = CampaignWriter(wallet, config=config)
        result = await writer.withdraw(campaign_id)
        _print_write_result(result, "Withdrawal")

    asyncio.run(run())


def cmd_image_upload(args: argparse.Namespace) -> None:
    async def run():
        try:
            upload = await PinataService().upload_image(args.file, args.name)
        finally:
            await aclose_async_client()
        console.print(f"[green]Uploaded[/green] {upload.cid}")
        console.print(f"URL: {upload.url}")

    asyncio.run(run())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crowdfund",
        description="Unified CLI for the Crowdfund Toolkit",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # campaigns-list
    p_list = sub.add_parser("campaigns-list", help="List campaigns")
    p_list.add_argument("--status", choices=STATUS_CHOICES)
    p_list.add_argument("--search", type=str, help="Match title/description")
    p_list.add_argument("--owner", type=str, help="Only campaigns of owner")
    p_list.add_argument("--sort", choices=SORT_KEYS, default="latest")
    p_list.add_argument("--page", type=int, default=1)
    p_list.add_argument("--json", action="store_true", help="Output JSON")
    p_list.add_argument("--output", type=str, help="Output filename")
    p_list.set_defaults(func=cmd_campaigns_list)

    # campaign-show
    p_show = sub.add_parser("campaign-show", help="Show one campaign")
    p_show.add_argument("--campaign-id", type=int, required=True)
    p_show.add_argument("--json", action="store_true", help="Output JSON")
    p_show.add_argument("--output", type=str, help="Output filename")
    p_show.set_defaults(func=cmd_campaign_show)

    # campaign-donations
    p_don = sub.add_parser(
        "campaign-donations", help="List contributions to a campaign"
    )
    p_don.add_argument("--campaign-id", type=int, required=True)
    p_don.add_argument("--json", action="store_true", help="Output JSON")
    p_don.add_argument("--output", type=str, help="Output filename")
    p_don.set_defaults(func=cmd_campaign_donations)

    # platform-info
    p_info = sub.add_parser("platform-info", help="Show platform settings")
    p_info.add_argument("--json", action="store_true", help="Output JSON")
    p_info.add_argument("--output", type=str, help="Output filename")
    p_info.set_defaults(func=cmd_platform_info)

    # campaign-create
    p_create = sub.add_parser("campaign-create", help="Create a campaign")
    p_create.add_argument("--title", type=str, required=True)
    p_create.add_argument("--description", type=str, required=True)
    p_create.add_argument("--target", type=str, required=True, help="ETH")
    p_create.add_argument(
        "--deadline",
        type=str,
        required=True,
        help="Local date-time, e.g. 2030-01-01T12:00",
    )
    p_create.add_argument("--image-url", type=str, required=True)
    p_create.set_defaults(func=cmd_campaign_create)

    # campaign-donate
    p_donate = sub.add_parser("campaign-donate", help="Contribute to a campaign")
    p_donate.add_argument("--campaign-id", type=int, required=True)
    p_donate.add_argument("--amount", type=str, required=True, help="ETH")
    p_donate.set_defaults(func=cmd_campaign_donate)

    # campaign-withdraw
    p_wd = sub.add_parser(
        "campaign-withdraw", help="Withdraw the funds of an owned campaign"
    )
    p_wd.add_argument("--campaign-id", type=int, required=True)
    p_wd.set_defaults(func=cmd_campaign_withdraw)

    # image-upload
    p_img = sub.add_parser("image-upload", help="Pin a campaign image to IPFS")
    p_img.add_argument("--file", type=str, required=True)
    p_img.add_argument("--name", type=str, help="Pin name")
    p_img.set_defaults(func=cmd_image_upload)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {e.message}")
        for field_name, message in e.errors.items():
            console.print(f"  {field_name}: {message}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise


if __name__ == "__main__":
    main()
