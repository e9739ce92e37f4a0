"""Intake pipeline: message assembly, contact handling and policy toggles."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.models.errors import ServerMisconfigured, ValidationFailed
from app.models.request_models import ApplySubmission
from tests.conftest import _make_application, make_settings

VERIFY = "app.tools.turnstile_tool.TurnstileVerifier.verify"
SEND = "app.tools.notification_tool.DiscordWebhookNotifier.send"
RESOLVE = "app.tools.member_directory_tool.MemberDirectory.resolve"


async def _run(body: dict, settings=None, **kwargs):
    """Run the pipeline with Turnstile passing; return (result, send mock)."""
    from app.pipeline.intake import process_application

    with (
        patch(VERIFY, new_callable=AsyncMock),
        patch(SEND, new_callable=AsyncMock) as mock_send,
    ):
        result = await process_application(
            ApplySubmission.model_validate(body),
            settings=settings or make_settings(),
            **kwargs,
        )
    return result, mock_send


@pytest.mark.asyncio
async def test_raw_fields_build_full_panel():
    result, mock_send = await _run(
        _make_application(classes="Shaman", roles=["Healer", "DPS"], notes="Hi there")
    )

    assert result.ok is True
    message = mock_send.call_args.args[0]
    panel = message.embeds[0]
    names = [f.name for f in panel.fields]
    assert names == [
        "BattleTag", "Class", "Roles", "Availability",
        "Raider.IO", "Warcraft Logs", "Discord",
    ]
    assert panel.get_field("Class").value == "Shaman"
    assert panel.get_field("Roles").value == "Healer, DPS"
    assert panel.get_field("Discord").value == "@toxarica"
    assert panel.description == "Hi there"
    assert panel.color == 0xF39C12
    assert panel.footer.text == "Guild Apply"
    assert panel.timestamp.startswith("2026-10-19T18:00:00")


@pytest.mark.asyncio
async def test_prebuilt_panel_is_revalidated_and_backfilled():
    body = {
        "turnstileToken": "valid-token",
        "consent": True,
        "content": "@everyone look at me",
        "embeds": [{
            "title": "Jaina @ Proudmoore",
            "description": "Frost main",
            "color": 0x3498DB,
            "fields": [
                {"name": "BattleTag", "value": "Jaina#9999", "inline": True},
                {"name": "Class", "value": "Mage", "inline": True},
                {"name": "Availability", "value": "Weekends"},
                {"name": "Raider.IO", "value": "https://raider.io/jaina"},
                {"name": "Warcraft Logs", "value": "https://warcraftlogs.com/jaina"},
            ],
            "footer": {"text": "TWWMP Apply", "icon_url": "https://guild.example/icon.png"},
        }],
        "discord": "@jaina",
    }
    result, mock_send = await _run(body)

    assert result.ok is True
    message = mock_send.call_args.args[0]
    panel = message.embeds[0]
    assert "@everyone" not in message.content
    assert "Jaina @ Proudmoore" in message.content
    assert panel.title == "Jaina @ Proudmoore"
    assert panel.description == "Frost main"
    assert panel.color == 0x3498DB
    assert panel.footer.text == "TWWMP Apply"
    assert message.to_payload()["embeds"][0]["footer"] == {
        "text": "TWWMP Apply", "icon_url": "https://guild.example/icon.png",
    }
    assert panel.get_field("Class").value == "Mage"
    # contact field is backfilled even though the client panel had none
    assert panel.get_field("Discord").value == "@jaina"


@pytest.mark.asyncio
async def test_prebuilt_panel_values_are_overridden_by_body_fields():
    body = _make_application(
        embeds=[{
            "title": "Someone @ Elsewhere",
            "fields": [{"name": "BattleTag", "value": "Fake#0000"}],
        }],
    )
    _, mock_send = await _run(body)

    panel = mock_send.call_args.args[0].embeds[0]
    assert panel.title == "Thrall @ Stormrage"
    assert panel.get_field("BattleTag").value == "Thrall#1234"
    assert panel.get_field("Availability").value == "Weeknights"


@pytest.mark.asyncio
async def test_prebuilt_panel_missing_mandatory_fields_is_rejected():
    body = {
        "turnstileToken": "valid-token",
        "consent": True,
        "embeds": [{"title": "Jaina @ Proudmoore", "fields": []}],
    }
    from app.pipeline.intake import process_application

    with (
        patch(VERIFY, new_callable=AsyncMock),
        patch(SEND, new_callable=AsyncMock) as mock_send,
    ):
        with pytest.raises(ValidationFailed) as exc_info:
            await process_application(ApplySubmission.model_validate(body), settings=make_settings())

    assert set(exc_info.value.details["missing"]) == {"btag", "availability", "rio", "wcl"}
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_role_mention_is_the_only_allowed_ping():
    _, mock_send = await _run(_make_application(), settings=make_settings(discord_role_id="555"))

    message = mock_send.call_args.args[0]
    assert message.content.startswith("<@&555> ")
    payload = message.to_payload()
    assert payload["allowed_mentions"] == {"parse": [], "roles": ["555"]}


@pytest.mark.asyncio
async def test_links_optional_when_toggle_off():
    body = _make_application(rio=None, wcl=None)
    _, mock_send = await _run(body, settings=make_settings(require_links=False))

    panel = mock_send.call_args.args[0].embeds[0]
    assert panel.get_field("Raider.IO") is None
    assert panel.get_field("Warcraft Logs") is None


@pytest.mark.asyncio
async def test_optional_link_must_still_be_a_url():
    body = _make_application(rio="not a url", wcl=None)
    with pytest.raises(ValidationFailed) as exc_info:
        await _run(body, settings=make_settings(require_links=False))
    assert exc_info.value.details == {"missing": [], "invalid": ["rio"]}


@pytest.mark.asyncio
async def test_contact_required_when_toggle_on():
    with pytest.raises(ValidationFailed) as exc_info:
        await _run(_make_application(discord=None), settings=make_settings(require_discord=True))
    assert exc_info.value.details["missing"] == ["discord"]


@pytest.mark.asyncio
async def test_directory_match_enriches_contact_field():
    settings = make_settings(discord_bot_token="bot", discord_guild_id="42")
    with patch(RESOLVE, new_callable=AsyncMock) as mock_resolve:
        mock_resolve.return_value = "123456789012345678"
        _, mock_send = await _run(_make_application(discord="  toxarica "), settings=settings)

    panel = mock_send.call_args.args[0].embeds[0]
    assert panel.get_field("Discord").value == "<@123456789012345678> (@toxarica)"


@pytest.mark.asyncio
async def test_directory_miss_falls_back_to_client_id_hint():
    settings = make_settings(discord_bot_token="bot", discord_guild_id="42")
    with patch(RESOLVE, new_callable=AsyncMock) as mock_resolve:
        mock_resolve.return_value = None
        _, mock_send = await _run(
            _make_application(discord_id_guess="223456789012345678"), settings=settings
        )

    panel = mock_send.call_args.args[0].embeds[0]
    assert panel.get_field("Discord").value == "<@223456789012345678> (@toxarica)"


@pytest.mark.asyncio
async def test_mention_token_passes_through():
    _, mock_send = await _run(_make_application(discord="<@123456789012345678>"))

    panel = mock_send.call_args.args[0].embeds[0]
    assert panel.get_field("Discord").value == "<@123456789012345678>"


@pytest.mark.asyncio
async def test_operator_debug_flag_skips_delivery():
    result, mock_send = await _run(_make_application(), settings=make_settings(apply_debug=True))

    assert result.debug is True
    assert result.details["embeds"][0]["fields"][0] == {
        "name": "BattleTag", "value": "Thrall#1234", "inline": True,
    }
    mock_send.assert_not_called()


@pytest.mark.asyncio
async def test_missing_webhook_fails_before_anything_else():
    from app.pipeline.intake import process_application

    with patch(VERIFY, new_callable=AsyncMock) as mock_verify:
        with pytest.raises(ServerMisconfigured):
            await process_application(
                ApplySubmission.model_validate(_make_application(website="bot")),
                settings=make_settings(discord_webhook_url=""),
            )
    mock_verify.assert_not_called()


def test_submission_accepts_legacy_single_values():
    sub = ApplySubmission.model_validate({"class": "Druid", "role": "Tank", "consent": True})
    assert sub.classes == ["Druid"]
    assert sub.roles == ["Tank"]
    assert sub.consent is True


@pytest.mark.parametrize("value", ["yes", "on", "true", 1])
def test_consent_must_be_a_real_boolean(value):
    with pytest.raises(PydanticValidationError):
        ApplySubmission.model_validate({"consent": value})


@pytest.mark.asyncio
async def test_oversized_application_respects_discord_limits():
    from app.pipeline.message_builder import embed_length

    _, mock_send = await _run(
        _make_application(
            character="C" * 3000,
            notes="n" * 5000,
            availability="a" * 2000,
            btag="B" * 1500,
        )
    )

    message = mock_send.call_args.args[0]
    panel = message.embeds[0]
    assert len(message.content) <= 2000
    assert message.content.endswith("…")
    assert len(panel.title) <= 256
    assert len(panel.description) <= 4096
    assert all(len(f.name) <= 256 and len(f.value) <= 1024 for f in panel.fields)
    assert len(panel.footer.text) <= 2048
    assert embed_length(panel) <= 6000
    assert panel.get_field("Availability").value.startswith("a" * 100)


def test_timestamp_parsing():
    from app.pipeline.submission import parse_timestamp

    assert parse_timestamp("2026-10-19T18:00:00Z") == "2026-10-19T18:00:00+00:00"
    assert parse_timestamp(1_700_000_000_000) == "2023-11-14T22:13:20+00:00"
    # garbage falls back to "now" rather than failing the submission
    assert parse_timestamp("yesterday-ish").endswith("+00:00")


@pytest.mark.asyncio
async def test_oversized_prebuilt_panel_keeps_mandatory_fields_within_limits():
    from app.pipeline.message_builder import embed_length

    body = _make_application(
        embeds=[{
            "title": "Thrall @ Stormrage",
            "description": "d" * 5000,
            "fields": [
                {"name": f"Extra {i} " + "N" * 300, "value": "v" * 2000}
                for i in range(25)
            ],
            "footer": {"text": "F" * 3000},
        }],
    )
    _, mock_send = await _run(body)

    panel = mock_send.call_args.args[0].embeds[0]
    assert len(panel.fields) == 25
    assert panel.get_field("BattleTag").value == "Thrall#1234"
    assert panel.get_field("Availability").value == "Weeknights"
    assert panel.get_field("Discord").value == "@toxarica"
    assert len(panel.footer.text) <= 2048
    assert embed_length(panel) <= 6000
