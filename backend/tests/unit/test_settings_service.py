"""Tests for the layered settings resolver and the admin settings service."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from magiclink.services.settings_service import (
    DEFAULT_EMAIL_SETTINGS,
    DEFAULT_EMAIL_SUBJECT,
    DEFAULT_TOKEN_CONFIG,
    EmailTemplateSettings,
    SettingsService,
    TokenConfig,
    resolve_email_settings,
    resolve_token_config,
    sanitize_string,
)
from tests.conftest import make_settings

_REPO = "magiclink.services.settings_service.EmailTemplateSettingsRepository"


# =============================================================================
# resolve_email_settings
# =============================================================================


class TestResolveEmailSettings:
    """Field-by-field merge: defaults < deployment < stored."""

    def test_defaults_show_through_when_upper_layers_are_empty(self):
        result = resolve_email_settings(DEFAULT_EMAIL_SETTINGS, None, None)
        assert result == DEFAULT_EMAIL_SETTINGS
        assert result.subject == DEFAULT_EMAIL_SUBJECT
        assert "{{MAGIC_LINK}}" in result.text
        assert "{{CODE}}" in result.html

    def test_stored_beats_deployment_beats_default(self):
        result = resolve_email_settings(
            EmailTemplateSettings(subject="default", text="default text"),
            {"subject": "deployment", "text": "deployment text"},
            {"subject": "stored"},
        )
        assert result.subject == "stored"
        assert result.text == "deployment text"

    def test_empty_string_falls_through(self):
        result = resolve_email_settings(
            EmailTemplateSettings(default_from="default@x.io"),
            EmailTemplateSettings(default_from="deploy@x.io"),
            EmailTemplateSettings(default_from=""),
        )
        assert result.default_from == "deploy@x.io"

    def test_non_string_values_are_treated_as_unset(self):
        result = resolve_email_settings(
            EmailTemplateSettings(html="<p>d</p>"),
            {"html": 42},
            {"html": None},
        )
        assert result.html == "<p>d</p>"

    def test_all_layers_empty_yields_empty_field(self):
        result = resolve_email_settings(EmailTemplateSettings(), {}, {})
        assert result.default_reply_to == ""


# =============================================================================
# resolve_token_config
# =============================================================================


class TestResolveTokenConfig:
    """Token parameters with numeric fallbacks."""

    def test_defaults_when_deployment_unset(self):
        result = resolve_token_config(
            DEFAULT_TOKEN_CONFIG,
            {"ttl_minutes": None, "token_length": None, "code_length": None},
        )
        assert result == TokenConfig(ttl_minutes=15, token_length=32, code_length=6)

    def test_deployment_values_win(self):
        result = resolve_token_config(
            DEFAULT_TOKEN_CONFIG,
            {"ttl_minutes": 30, "token_length": 48, "code_length": 8},
        )
        assert result == TokenConfig(ttl_minutes=30, token_length=48, code_length=8)

    @pytest.mark.parametrize("bad", [0, -5, "abc", float("nan"), True])
    def test_unusable_deployment_value_falls_back(self, bad):
        result = resolve_token_config(
            DEFAULT_TOKEN_CONFIG,
            {"ttl_minutes": bad, "token_length": bad, "code_length": bad},
        )
        assert result == DEFAULT_TOKEN_CONFIG

    def test_unusable_defaults_fall_back_to_hard_values(self):
        result = resolve_token_config(
            TokenConfig(ttl_minutes=0, token_length=-1, code_length=0), None
        )
        assert result == TokenConfig(ttl_minutes=15, token_length=32, code_length=6)

    def test_numeric_strings_are_accepted(self):
        result = resolve_token_config(DEFAULT_TOKEN_CONFIG, {"ttl_minutes": "5"})
        assert result.ttl_minutes == 5

    def test_fractional_ttl_is_kept(self):
        result = resolve_token_config(DEFAULT_TOKEN_CONFIG, {"ttl_minutes": 0.5})
        assert result.ttl_minutes == 0.5

    def test_fractional_length_is_ignored(self):
        result = resolve_token_config(DEFAULT_TOKEN_CONFIG, {"code_length": 6.5})
        assert result.code_length == 6

    def test_guessable_lengths_fall_back_to_defaults(self):
        result = resolve_token_config(
            DEFAULT_TOKEN_CONFIG, {"token_length": 8, "code_length": 2}
        )
        assert result.token_length == 32
        assert result.code_length == 6

    def test_lengths_wider_than_columns_fall_back(self):
        result = resolve_token_config(
            DEFAULT_TOKEN_CONFIG, {"token_length": 256, "code_length": 17}
        )
        assert result.token_length == 32
        assert result.code_length == 6

    def test_out_of_range_deployment_value_uses_defaults_layer(self):
        result = resolve_token_config(
            TokenConfig(ttl_minutes=15, token_length=64, code_length=8),
            {"token_length": 15, "code_length": 3},
        )
        assert result.token_length == 64
        assert result.code_length == 8

    def test_lengths_at_bounds_are_kept(self):
        result = resolve_token_config(
            DEFAULT_TOKEN_CONFIG, {"token_length": 16, "code_length": 16}
        )
        assert result.token_length == 16
        assert result.code_length == 16


class TestSanitizeString:
    def test_strings_pass_through(self):
        assert sanitize_string("x") == "x"

    @pytest.mark.parametrize("value", [None, 1, ["a"], {"a": 1}])
    def test_non_strings_become_empty(self, value):
        assert sanitize_string(value) == ""


# =============================================================================
# SettingsService
# =============================================================================


class TestSettingsService:
    """SettingsService against a mocked repository."""

    @pytest.fixture
    def db(self):
        return MagicMock()

    async def test_get_email_settings_merges_all_three_layers(self, db):
        stored = SimpleNamespace(
            default_from="",
            default_reply_to="support@x.io",
            subject="Stored subject",
            text_body="",
            html_body="",
        )
        app_settings = make_settings(
            email_default_from="deploy@x.io", email_text="Deploy {{CODE}}"
        )
        with patch(f"{_REPO}.get", AsyncMock(return_value=stored)):
            result = await SettingsService(db, app_settings).get_email_settings()

        assert result.default_from == "deploy@x.io"
        assert result.default_reply_to == "support@x.io"
        assert result.subject == "Stored subject"
        assert result.text == "Deploy {{CODE}}"
        assert result.html == DEFAULT_EMAIL_SETTINGS.html

    async def test_get_settings_without_stored_row_returns_defaults(self, db):
        with patch(f"{_REPO}.get", AsyncMock(return_value=None)):
            result = await SettingsService(db, make_settings()).get_settings()
        assert result == DEFAULT_EMAIL_SETTINGS

    async def test_get_token_config_reads_deployment_layer(self, db):
        service = SettingsService(
            db, make_settings(token_ttl_minutes=5, code_length=8)
        )
        result = await service.get_token_config()
        assert result == TokenConfig(ttl_minutes=5, token_length=32, code_length=8)

    async def test_update_settings_stores_verbatim_and_returns_stored(self, db):
        upsert = AsyncMock()
        with patch(f"{_REPO}.upsert", upsert):
            result = await SettingsService(db, make_settings()).update_settings(
                {
                    "default_from": "a@x.io",
                    "default_reply_to": 7,
                    "subject": "",
                    "text": "Hi {{CODE}}",
                }
            )

        assert result == EmailTemplateSettings(
            default_from="a@x.io",
            default_reply_to="",
            subject="",
            text="Hi {{CODE}}",
            html="",
        )
        upsert.assert_awaited_once_with(
            db,
            default_from="a@x.io",
            default_reply_to="",
            subject="",
            text_body="Hi {{CODE}}",
            html_body="",
        )
