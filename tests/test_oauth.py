"""Tests for the OAuth install flow."""

import pytest
from slack_sdk.errors import SlackApiError

from slack_bubble_relay.config import Config
from slack_bubble_relay.forwarder import WorkflowError
from slack_bubble_relay.oauth import OAuthError, OAuthInstaller

OAUTH_RESPONSE = {
    "ok": True,
    "access_token": "xoxb-new",
    "bot_user_id": "UNEWBOT",
    "team": {"id": "T1", "name": "Acme"},
    "authed_user": {"id": "UALICE"},
}


def make_config() -> Config:
    return Config(
        slack_bot_token="xoxb-fake",
        bubble_api_url="https://app.bubbleapps.io/api/1.1/wf",
        slack_client_id="123.456",
        slack_client_secret="shh",
        slack_redirect_uri="https://relay.example/slack/oauth_redirect",
    )


@pytest.fixture()
def client(mocker):
    client = mocker.AsyncMock()
    client.oauth_v2_access.return_value = OAUTH_RESPONSE
    return client


@pytest.fixture()
def forwarder(mocker):
    return mocker.AsyncMock()


class TestInstall:
    async def test_exchanges_code_with_client_credentials(self, client, forwarder):
        await OAuthInstaller(make_config(), client, forwarder).install("c0de")

        client.oauth_v2_access.assert_awaited_once_with(
            client_id="123.456",
            client_secret="shh",
            code="c0de",
            redirect_uri="https://relay.example/slack/oauth_redirect",
        )

    async def test_forwards_installation(self, client, forwarder):
        installation = await OAuthInstaller(make_config(), client, forwarder).install("c0de")

        assert installation == {
            "team_id": "T1",
            "team_name": "Acme",
            "user_id": "UALICE",
            "access_token": "xoxb-new",
            "bot_user_id": "UNEWBOT",
        }
        forwarder.post_workflow.assert_awaited_once_with(
            "https://app.bubbleapps.io/api/1.1/wf/slack_oauth", installation
        )

    async def test_exchange_failure_raises(self, client, forwarder):
        client.oauth_v2_access.side_effect = SlackApiError(
            "bad", {"ok": False, "error": "invalid_code"}
        )

        with pytest.raises(OAuthError, match="invalid_code"):
            await OAuthInstaller(make_config(), client, forwarder).install("bad")

        forwarder.post_workflow.assert_not_called()

    async def test_backend_failure_raises(self, client, forwarder):
        forwarder.post_workflow.side_effect = WorkflowError("down")

        with pytest.raises(OAuthError):
            await OAuthInstaller(make_config(), client, forwarder).install("c0de")
