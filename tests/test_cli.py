"""Tests for the CLI interface."""

import json

import httpx
import pytest
import respx
from click.testing import CliRunner
from conftest import DID, XRPC

from bsky_crosspost.cli import main
from bsky_crosspost.config import AppConfig, load_config, save_config
from bsky_crosspost.models import Credentials
from bsky_crosspost.state import StateManager

POST_URI = f"at://{DID}/app.bsky.feed.post/3kabc"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.toml"


@pytest.fixture
def configured(config_path, tmp_path):
    """Create a valid config file."""
    config = AppConfig(
        pds_domain="pds.example.com",
        credentials=Credentials(handle="bob.pds.example.com", password="pw", did=DID),
        admin_password="adminpw",
        state_dir=tmp_path / ".state",
    )
    save_config(config, config_path)
    return config_path


@pytest.fixture
def text_status(tmp_path):
    path = tmp_path / "status.json"
    path.write_text(
        json.dumps(
            {
                "id": "42",
                "created_at": "2025-02-10T18:30:00Z",
                "content": "<p>Hello from the CLI</p>",
            }
        )
    )
    return path


def _mock_session():
    respx.post(f"{XRPC}/com.atproto.server.createSession").mock(
        return_value=httpx.Response(200, json={"accessJwt": "jwt"})
    )


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Bluesky cross-poster" in result.output

    def test_setup_creates_config(self, runner, config_path):
        result = runner.invoke(
            main,
            ["--config", str(config_path), "setup"],
            input="pds.example.com\nbob.pds.example.com\npw\ndid:plc:x\n\n",
        )
        assert result.exit_code == 0
        assert "Config saved" in result.output
        config = load_config(config_path)
        assert config.pds_domain == "pds.example.com"
        assert config.credentials.did == "did:plc:x"
        assert config.admin_password is None

    def test_post_without_config(self, runner, config_path, text_status):
        result = runner.invoke(main, ["--config", str(config_path), "post", str(text_status)])
        assert result.exit_code != 0
        assert "No config found" in result.output

    def test_status_without_config(self, runner, config_path):
        result = runner.invoke(main, ["--config", str(config_path), "status"])
        assert result.exit_code == 0
        assert "Not configured" in result.output

    @respx.mock
    def test_post_records_state(self, runner, configured, text_status, tmp_path):
        _mock_session()
        create = respx.post(f"{XRPC}/com.atproto.repo.createRecord").mock(
            return_value=httpx.Response(200, json={"uri": POST_URI})
        )

        result = runner.invoke(main, ["--config", str(configured), "post", str(text_status)])

        assert result.exit_code == 0, result.output
        assert POST_URI in result.output
        record = json.loads(create.calls.last.request.content)["record"]
        assert record["text"] == "Hello from the CLI"
        assert StateManager(tmp_path / ".state").record_uri("42") == POST_URI

    @respx.mock
    def test_post_skips_already_crossposted(self, runner, configured, text_status, tmp_path):
        state = StateManager(tmp_path / ".state")
        state.mark_crossposted("42", POST_URI)
        state.save()
        create = respx.post(f"{XRPC}/com.atproto.repo.createRecord")

        result = runner.invoke(main, ["--config", str(configured), "post", str(text_status)])

        assert result.exit_code == 0
        assert "already cross-posted" in result.output
        assert not create.called

    @respx.mock
    def test_post_failure_exits_nonzero(self, runner, configured, text_status):
        respx.post(f"{XRPC}/com.atproto.server.createSession").mock(
            return_value=httpx.Response(401, json={"error": "AuthenticationRequired"})
        )

        result = runner.invoke(main, ["--config", str(configured), "post", str(text_status)])

        assert result.exit_code == 1
        assert "Failed to cross-post" in result.output

    @respx.mock
    def test_delete_by_status_id(self, runner, configured, tmp_path):
        state = StateManager(tmp_path / ".state")
        state.mark_crossposted("42", POST_URI)
        state.save()
        _mock_session()
        delete = respx.post(f"{XRPC}/com.atproto.repo.deleteRecord").mock(
            return_value=httpx.Response(200, json={})
        )

        result = runner.invoke(main, ["--config", str(configured), "delete", "42"])

        assert result.exit_code == 0, result.output
        assert delete.called
        assert not StateManager(tmp_path / ".state").is_crossposted("42")

    def test_delete_unknown_status(self, runner, configured):
        result = runner.invoke(main, ["--config", str(configured), "delete", "999"])
        assert result.exit_code == 1
        assert "No cross-posted record" in result.output

    def test_delete_malformed_uri(self, runner, configured):
        result = runner.invoke(main, ["--config", str(configured), "delete", "at://broken"])
        assert result.exit_code == 1

    @respx.mock
    def test_profile_sync(self, runner, configured, tmp_path):
        account = tmp_path / "account.json"
        account.write_text(json.dumps({"id": "7", "display_name": "Bob", "note": "Hello"}))
        _mock_session()
        respx.get(f"{XRPC}/com.atproto.repo.getRecord").mock(
            return_value=httpx.Response(200, json={"value": {"displayName": "Bob", "description": "Hello"}})
        )

        result = runner.invoke(main, ["--config", str(configured), "profile", str(account)])

        assert result.exit_code == 0, result.output
        assert "Profile unchanged" in result.output

    @respx.mock
    def test_create_account_saves_credentials(self, runner, configured, tmp_path):
        account = tmp_path / "account.json"
        account.write_text(json.dumps({"id": "7", "display_name": "Carol", "note": ""}))
        respx.post(f"{XRPC}/com.atproto.server.createInviteCode").mock(
            return_value=httpx.Response(200, json={"code": "invite-1"})
        )
        respx.post(f"{XRPC}/com.atproto.server.createAccount").mock(
            return_value=httpx.Response(200, json={"did": "did:plc:new", "handle": "carol.pds.example.com"})
        )
        _mock_session()
        respx.post(f"{XRPC}/com.atproto.repo.createRecord").mock(
            return_value=httpx.Response(200, json={"uri": "at://did:plc:new/app.bsky.actor.profile/self"})
        )

        result = runner.invoke(
            main,
            [
                "--config", str(configured),
                "create-account", str(account),
                "--email", "carol@example.com",
                "--username", "carol",
            ],
        )

        assert result.exit_code == 0, result.output
        config = load_config(configured)
        assert config.credentials.did == "did:plc:new"
        assert config.credentials.handle == "carol.pds.example.com"

    def test_status_with_config(self, runner, configured):
        result = runner.invoke(main, ["--config", str(configured), "status"])
        assert result.exit_code == 0
        assert "pds.example.com" in result.output
        assert "Cross-posted statuses: 0" in result.output

