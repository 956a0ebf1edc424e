"""
Unit tests for the command line entry point.

Network-facing services are replaced with mocks; only argument handling,
input validation and output are exercised.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from crowdfund_toolkit import cli
from crowdfund_toolkit.campaigns.normalizer import normalize_record
from crowdfund_toolkit.campaigns.writer import WriteResult
from crowdfund_toolkit.shared.exceptions import FetchFailed, ReadErrorKind
from crowdfund_toolkit.shared.results import Result


@pytest.fixture(autouse=True)
def sepolia_env(monkeypatch):
    for name in ("CF_CHAIN_ID", "CF_CONTRACT_ADDRESS", "CF_RPC_URLS"):
        monkeypatch.delenv(name, raising=False)


class TestParser:
    def test_list_defaults(self):
        args = cli.build_parser().parse_args(["campaigns-list"])
        assert args.sort == "latest"
        assert args.page == 1
        assert args.status is None
        assert args.func is cli.cmd_campaigns_list

    def test_rejects_unknown_status(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["campaigns-list", "--status", "paused"])

    def test_donate_requires_amount(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["campaign-donate", "--campaign-id", "1"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestMain:
    def test_invalid_form_exits_before_wallet(self, capsys):
        with patch.object(cli.Wallet, "from_env") as from_env:
            with pytest.raises(SystemExit) as exc_info:
                cli.main(
                    [
                        "campaign-create",
                        "--title", "ab",
                        "--description", "Wells for three villages",
                        "--target", "1",
                        "--deadline", "2030-01-01T12:00",
                        "--image-url", "ipfs://QmCid",
                    ]
                )

        assert exc_info.value.code == 1
        from_env.assert_not_called()
        out = capsys.readouterr().out
        assert "Title must be at least 3 characters" in out

    def test_negative_campaign_id_exits(self, capsys):
        with patch.object(cli, "CampaignService") as service_cls:
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["campaign-show", "--campaign-id", "-1"])

        assert exc_info.value.code == 1
        service_cls.assert_not_called()
        assert "campaign_id" in capsys.readouterr().out

    def test_bad_owner_exits_before_fetch(self, capsys):
        service = MagicMock()
        service.fetch_campaigns_with_retry = AsyncMock()
        with patch.object(cli, "CampaignService", return_value=service):
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["campaigns-list", "--owner", "0x1234"])

        assert exc_info.value.code == 1
        service.fetch_campaigns_with_retry.assert_not_awaited()
        assert "owner" in capsys.readouterr().out

    def test_list_retries_failed_fetch(self, capsys, raw_record):
        fetch = AsyncMock(
            side_effect=[
                FetchFailed("connection reset", kind=ReadErrorKind.NETWORK),
                Result.ok([normalize_record(raw_record)]),
            ]
        )

        async def mock_sleep(delay):
            pass

        with patch.object(cli.CampaignService, "fetch_campaigns", fetch), patch(
            "crowdfund_toolkit.shared.retry.asyncio.sleep", mock_sleep
        ):
            cli.main(["campaigns-list"])

        assert fetch.await_count == 2
        assert "1 campaigns" in capsys.readouterr().out

    def test_list_json(self, tmp_path, monkeypatch, raw_record):
        monkeypatch.chdir(tmp_path)
        result = Result.ok([normalize_record(raw_record)])
        result.add_warning("get_campaign", "getCampaign(1) failed")

        service = MagicMock()
        service.fetch_campaigns_with_retry = AsyncMock(return_value=result)
        with patch.object(cli, "CampaignService", return_value=service):
            cli.main(["campaigns-list", "--json", "--output", "list.json"])

        data = json.loads((tmp_path / "output" / "list.json").read_text())
        assert [c["title"] for c in data["campaigns"]] == ["Clean water"]
        assert data["stats"]["total_campaigns"] == 1
        assert [s["message"] for s in data["skipped"]] == ["getCampaign(1) failed"]

    def test_list_table(self, capsys, raw_record):
        service = MagicMock()
        service.fetch_campaigns_with_retry = AsyncMock(
            return_value=Result.ok([normalize_record(raw_record)])
        )
        with patch.object(cli, "CampaignService", return_value=service):
            cli.main(["campaigns-list", "--search", "water"])

        out = capsys.readouterr().out
        assert "1 campaigns" in out

    def test_list_owner_filter(self, tmp_path, monkeypatch, raw_record):
        monkeypatch.chdir(tmp_path)
        other = dict(raw_record, id=1, owner="0x" + "1" * 40)
        service = MagicMock()
        service.fetch_campaigns_with_retry = AsyncMock(
            return_value=Result.ok(
                [normalize_record(raw_record), normalize_record(other)]
            )
        )
        owner = raw_record["owner"].lower()
        with patch.object(cli, "CampaignService", return_value=service):
            cli.main(
                ["campaigns-list", "--owner", owner, "--json", "--output", "o.json"]
            )

        data = json.loads((tmp_path / "output" / "o.json").read_text())
        assert [c["id"] for c in data["campaigns"]] == [0]


def _withdrawable(raw_record):
    """Expired, funded, not yet withdrawn."""
    return normalize_record(dict(raw_record, deadline=1))


class TestWithdraw:
    def test_rejected_signature_message(self, capsys, raw_record):
        wallet = MagicMock()
        wallet.address = raw_record["owner"]
        service = MagicMock()
        service.get_campaign = AsyncMock(return_value=_withdrawable(raw_record))
        writer = MagicMock()
        writer.withdraw = AsyncMock(return_value=WriteResult(rejected=True))

        with patch.object(cli.Wallet, "from_env", return_value=wallet), patch.object(
            cli, "CampaignService", return_value=service
        ), patch.object(cli, "CampaignWriter", return_value=writer):
            cli.main(["campaign-withdraw", "--campaign-id", "2"])

        writer.withdraw.assert_awaited_once_with(2)
        assert "signature rejected" in capsys.readouterr().out

    def test_not_owner_never_signs(self, raw_record):
        wallet = MagicMock()
        wallet.address = "0x" + "2" * 40
        service = MagicMock()
        service.get_campaign = AsyncMock(return_value=_withdrawable(raw_record))

        with patch.object(cli.Wallet, "from_env", return_value=wallet), patch.object(
            cli, "CampaignService", return_value=service
        ), patch.object(cli, "CampaignWriter") as writer_cls:
            with pytest.raises(SystemExit) as exc_info:
                cli.main(["campaign-withdraw", "--campaign-id", "2"])

        assert exc_info.value.code == 1
        writer_cls.assert_not_called()
