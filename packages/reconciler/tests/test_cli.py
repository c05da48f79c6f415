"""Tests for the command line entry point."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog

from settlement_recon import cli
from settlement_recon.config.settings import Settings
from settlement_recon.config.logging import configure_logging
from settlement_recon.config.state import SavedState, load_state

REPORT = """customer_id,customer_email,reporting_category,gross,fee
,,charge,100.00,-3.00
cus_channel,,charge,60.00,2.00
"""


class FakeStripeClient:
    """Stand-in for StripeClient with no invoices."""

    def __init__(self, secret_key=None, **kwargs):
        self.secret_key = secret_key
        self.lookups: list[str] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def latest_invoice(self, customer_id):
        self.lookups.append(customer_id)
        return None


@pytest.fixture(autouse=True)
def stderr_logging():
    """Route logs to stderr as cli.main does, so stdout carries only the report."""
    configure_logging(level="WARNING")
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers = []


@pytest.fixture
def settings(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("RECON_STATE_FILE", str(tmp_path / "state.json"))
    monkeypatch.delenv("EXCLUDED_PRODUCT_ID", raising=False)
    monkeypatch.delenv("EXCLUSION_CUSTOMER_IDS", raising=False)
    return Settings(_env_file=None)


@pytest.fixture
def report(tmp_path: Path) -> Path:
    path = tmp_path / "report.csv"
    path.write_text(REPORT, encoding="utf-8")
    return path


class TestResolveInputs:
    """Tests for merging arguments, settings and prompts."""

    def test_arguments_skip_prompts(self, settings, report):
        args = cli.build_parser().parse_args(
            [str(report), "--product", "prod_ammo", "--customers", "cus_A, cus_B"]
        )
        prompt = MagicMock()

        inputs = cli.resolve_inputs(args, settings, SavedState(), prompt=prompt)

        prompt.assert_not_called()
        assert inputs.secret_key == "sk_test_123"
        assert inputs.report_path == report
        assert inputs.config.excluded_product_id == "prod_ammo"
        assert inputs.config.exclusion_customer_ids == frozenset({"cus_A", "cus_B"})

    def test_prompts_offer_saved_defaults(self, settings):
        args = cli.build_parser().parse_args([])
        saved = SavedState(
            excluded_product_id="prod_saved",
            exclusion_customer_ids=["cus_saved"],
            report_path="/reports/last.csv",
        )
        prompt = MagicMock(side_effect=["", "", "cus_new,cus_other"])

        inputs = cli.resolve_inputs(args, settings, saved, prompt=prompt)

        questions = [call.args[0] for call in prompt.call_args_list]
        assert "[prod_saved]" in questions[0]
        assert "[/reports/last.csv]" in questions[1]
        assert "[cus_saved]" in questions[2]
        assert inputs.config.excluded_product_id == "prod_saved"
        assert inputs.report_path == Path("/reports/last.csv")
        assert inputs.config.exclusion_customer_ids == frozenset({"cus_new", "cus_other"})

    def test_secret_is_prompted_when_unset(self, monkeypatch, tmp_path, report):
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        settings = Settings(_env_file=None)
        args = cli.build_parser().parse_args([str(report), "--product", "p", "--customers", ""])
        secret_prompt = MagicMock(return_value=" sk_live_typed ")

        inputs = cli.resolve_inputs(
            args, settings, SavedState(), prompt=MagicMock(), secret_prompt=secret_prompt
        )

        assert inputs.secret_key == "sk_live_typed"
        assert inputs.config.exclusion_customer_ids == frozenset()


class TestRun:
    """Tests for a full CLI run."""

    @pytest.mark.asyncio
    async def test_json_run_saves_state(self, monkeypatch, settings, report, capsys):
        monkeypatch.setattr(cli, "StripeClient", FakeStripeClient)
        args = cli.build_parser().parse_args(
            [str(report), "--product", "ammo", "--customers", "cus_channel", "--format", "json"]
        )

        status = await cli.run(args, settings)

        assert status == 0
        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["gross_before_fees"] == "160.00"
        assert data["summary"]["platform_gross_sales"] == "0.00"
        saved = load_state(settings.state_file)
        assert saved.excluded_product_id == "ammo"
        assert saved.exclusion_customer_ids == ["cus_channel"]

    @pytest.mark.asyncio
    async def test_no_save_leaves_state_alone(self, monkeypatch, settings, report):
        monkeypatch.setattr(cli, "StripeClient", FakeStripeClient)
        args = cli.build_parser().parse_args(
            [str(report), "--product", "ammo", "--customers", "", "--no-save"]
        )

        status = await cli.run(args, settings)

        assert status == 0
        assert not settings.state_file.exists()

    @pytest.mark.asyncio
    async def test_unreadable_report_fails(self, monkeypatch, settings, tmp_path):
        monkeypatch.setattr(cli, "StripeClient", FakeStripeClient)
        args = cli.build_parser().parse_args(
            [str(tmp_path / "missing.csv"), "--product", "ammo", "--customers", ""]
        )

        assert await cli.run(args, settings) == 1

    @pytest.mark.asyncio
    async def test_text_output(self, monkeypatch, settings, report, capsys):
        monkeypatch.setattr(cli, "StripeClient", FakeStripeClient)
        args = cli.build_parser().parse_args(
            [str(report), "--product", "ammo", "--customers", "cus_channel"]
        )

        await cli.run(args, settings)

        out = capsys.readouterr().out
        assert "Additional processor fees" in out
        assert "Platform Net Disbursed = $0.00" in out
