"""Settings parsing and composition-root wiring."""

from pathlib import Path

from stockhold.infrastructure.bootstrap import payment_gateway
from stockhold.infrastructure.config import Settings
from stockhold.infrastructure.gateway.local_gateway import LocalPaymentGateway
from stockhold.infrastructure.gateway.razorpay_gateway import RazorpayGateway


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.hold_ttl_seconds == 900
        assert settings.reaper_enabled is True
        assert settings.currency == "INR"
        assert settings.db_path.name == "stockhold.db"
        assert settings.razorpay_configured is False

    def test_reads_environment(self):
        settings = Settings.from_env({
            "STOCKHOLD_DB_PATH": "/tmp/x/holds.db",
            "STOCKHOLD_HOLD_TTL_SECONDS": "120",
            "STOCKHOLD_REAPER_INTERVAL_SECONDS": "2.5",
            "STOCKHOLD_REAPER_ENABLED": "no",
            "STOCKHOLD_GATEWAY_MAX_ATTEMPTS": "5",
            "STOCKHOLD_LOG_LEVEL": "debug",
            "STOCKHOLD_LOG_JSON": "true",
            "RAZORPAY_KEY_ID": "rzp_live",
            "RAZORPAY_KEY_SECRET": "s3cret",
            "RAZORPAY_WEBHOOK_SECRET": "wh00k",
        })

        assert settings.db_path == Path("/tmp/x/holds.db")
        assert settings.hold_ttl_seconds == 120
        assert settings.reaper_interval_seconds == 2.5
        assert settings.reaper_enabled is False
        assert settings.gateway_max_attempts == 5
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True
        assert settings.razorpay_configured is True

    def test_webhook_secret_is_required_for_razorpay(self):
        settings = Settings.from_env(
            {"RAZORPAY_KEY_ID": "rzp_live", "RAZORPAY_KEY_SECRET": "s3cret"}
        )
        assert settings.razorpay_webhook_secret == ""
        assert settings.razorpay_configured is False

    def test_blank_flag_keeps_default(self):
        assert Settings.from_env({"STOCKHOLD_REAPER_ENABLED": ""}).reaper_enabled is True


class TestGatewaySelection:

    def test_local_gateway_without_credentials(self):
        assert isinstance(payment_gateway(Settings()), LocalPaymentGateway)

    def test_local_gateway_without_webhook_secret(self):
        settings = Settings(razorpay_key_id="k", razorpay_key_secret="s")
        assert isinstance(payment_gateway(settings), LocalPaymentGateway)

    def test_razorpay_with_credentials(self):
        gateway = payment_gateway(
            Settings(razorpay_key_id="k", razorpay_key_secret="s", razorpay_webhook_secret="w")
        )
        try:
            assert isinstance(gateway, RazorpayGateway)
        finally:
            gateway.close()
