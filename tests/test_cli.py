"""Tests for the CLI helpers and commands."""
import json
import logging
import os
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

import autoreadme.cli as cli
from autoreadme.errors import ServiceError
from autoreadme.models import ThreadMessage, ThreadRun


class FakeClient:
    """Async-context stand-in for AssistantAPIClient."""

    instances = []

    def __init__(self, token):
        self.token = token
        self.verify_credentials = AsyncMock()
        self.get_model = AsyncMock(return_value={"id": "gpt-4o-mini"})
        self.get_vector_store = AsyncMock(return_value={"id": "vs_123"})
        self.create_vector_store = AsyncMock(return_value="vs_new")
        self.get_assistant = AsyncMock(return_value={
            "id": "asst_123",
            "tool_resources": {"file_search": {"vector_store_ids": ["vs_123"]}},
        })
        self.create_assistant = AsyncMock(return_value="asst_new")
        self.upload_file = AsyncMock(side_effect=lambda name, content: f"file-{name}")
        self.delete_file = AsyncMock()
        self.create_thread_and_run = AsyncMock(return_value=ThreadRun("run_1", "thread_1", "queued"))
        self.get_run = AsyncMock(return_value=ThreadRun("run_1", "thread_1", "completed"))
        self.get_thread_messages = AsyncMock(return_value=[
            ThreadMessage(role="assistant", texts=("# Generated\n",)),
        ])
        FakeClient.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return None


def _ask(answers):
    def ask(prompt, **kwargs):
        for prefix, answer in answers.items():
            if prompt.startswith(prefix):
                return answer
        return kwargs.get("default", "")
    return ask


@pytest.fixture(autouse=True)
def _reset(monkeypatch, tmp_path):
    FakeClient.instances = []
    monkeypatch.chdir(tmp_path)
    yield
    logging.disable(logging.NOTSET)
    for handler in list(logging.getLogger().handlers):
        logging.getLogger().removeHandler(handler)


class TestSetupLogging:
    def test_silent_by_default(self):
        assert cli._setup_logging(debug=False, silent=False, log_level=None) == "silent"

    def test_debug(self):
        assert cli._setup_logging(debug=True, silent=False, log_level=None) == "DEBUG"
        assert logging.getLogger().level == logging.DEBUG

    def test_explicit_level(self):
        assert cli._setup_logging(debug=False, silent=False, log_level="warning") == "WARNING"

    def test_silent_wins(self):
        assert cli._setup_logging(debug=True, silent=True, log_level="info") == "silent"


class TestEnvFile:
    def test_loads_values(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AUTOREADME_TEST_A", raising=False)
        monkeypatch.delenv("AUTOREADME_TEST_B", raising=False)
        env = tmp_path / "test.env"
        env.write_text(
            "# comment\nAUTOREADME_TEST_A='quoted'\nexport AUTOREADME_TEST_B=plain\nnot a pair\n",
            encoding="utf-8",
        )

        cli._load_env_file(env)

        assert os.environ["AUTOREADME_TEST_A"] == "quoted"
        assert os.environ["AUTOREADME_TEST_B"] == "plain"

    def test_does_not_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTOREADME_TEST_A", "existing")
        env = tmp_path / "test.env"
        env.write_text("AUTOREADME_TEST_A=new\n", encoding="utf-8")

        cli._load_env_file(env)

        assert os.environ["AUTOREADME_TEST_A"] == "existing"

    def test_missing_file(self, tmp_path):
        with pytest.raises(cli.CLIError):
            cli._load_env_file(tmp_path / "missing.env")


class TestParser:
    def test_generate_defaults(self):
        args = cli._build_parser().parse_args(["generate"])
        assert args.target == Path(".")
        assert args.concurrency == 5
        assert args.poll_interval == 3.0
        assert args.timeout is None
        assert args.output == "README.md"
        assert args.cleanup is False

    def test_global_flags(self):
        args = cli._build_parser().parse_args(
            ["--config-path", "/tmp/c.json", "--log-level", "debug", "generate", "-t", "src"]
        )
        assert args.config_path == Path("/tmp/c.json")
        assert args.log_level == "debug"
        assert args.target == Path("src")


class TestConfigure:
    @pytest.mark.asyncio
    async def test_creates_missing_resources(self, tmp_path):
        target = tmp_path / "conf" / "config.json"
        ask = _ask({
            "Enter access token": "sk-new",
            "Enter model version": "",
            "Enter vector store ID": "",
            "Enter assistant ID": "",
            "Enter config path": str(target),
        })

        written = await cli._run_configure(None, ask=ask, client_factory=FakeClient)

        assert written == target
        assert json.loads(target.read_text(encoding="utf-8")) == {
            "accessToken": "sk-new",
            "modelVersion": "gpt-4o-mini",
            "assistantId": "asst_new",
            "vectorStoreId": "vs_new",
        }
        client = FakeClient.instances[0]
        client.create_vector_store.assert_awaited_once_with("autoreadme")
        client.create_assistant.assert_awaited_once_with(
            "autoreadme", cli.ASSISTANT_DESCRIPTION, "gpt-4o-mini", "vs_new"
        )

    @pytest.mark.asyncio
    async def test_validates_existing_resources(self, tmp_path):
        target = tmp_path / "conf" / "config.json"
        ask = _ask({
            "Enter access token": "sk-new",
            "Enter model version": "gpt-4o",
            "Enter vector store ID": "vs_123",
            "Enter assistant ID": "asst_123",
            "Enter config path": str(target),
        })

        await cli._run_configure(None, ask=ask, client_factory=FakeClient)

        client = FakeClient.instances[0]
        client.get_model.assert_awaited_once_with("gpt-4o")
        client.get_vector_store.assert_awaited_once_with("vs_123")
        client.create_assistant.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        class Rejecting(FakeClient):
            def __init__(self, token):
                super().__init__(token)
                self.verify_credentials.side_effect = ServiceError.from_status(401)

        with pytest.raises(cli.CLIError, match="access token"):
            await cli._run_configure(None, ask=_ask({"Enter access token": "bad"}), client_factory=Rejecting)

    @pytest.mark.asyncio
    async def test_assistant_without_vector_store(self, tmp_path):
        class NoStore(FakeClient):
            def __init__(self, token):
                super().__init__(token)
                self.get_assistant.return_value = {"id": "asst_123", "tool_resources": {}}

        ask = _ask({
            "Enter access token": "sk",
            "Enter vector store ID": "vs_123",
            "Enter assistant ID": "asst_123",
        })
        with pytest.raises(cli.CLIError, match="assistant"):
            await cli._run_configure(None, ask=ask, client_factory=NoStore)


class TestRunCli:
    def test_no_command_prints_help(self, capsys):
        assert cli.run_cli([]) == 0
        assert "generate" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        code = cli.run_cli(["--config-path", str(tmp_path / "none.json"), "test"])
        assert code == 1
        assert "ERROR:" in capsys.readouterr().err

    def test_test_command(self, config_file, monkeypatch):
        monkeypatch.setattr(cli, "AssistantAPIClient", FakeClient)

        assert cli.run_cli(["--config-path", str(config_file), "test"]) == 0
        client = FakeClient.instances[0]
        assert client.token == "sk-test-token"
        client.get_assistant.assert_awaited_once_with("asst_123")

    def test_generate_writes_readme(self, config_file, source_tree, monkeypatch):
        monkeypatch.setattr(cli, "AssistantAPIClient", FakeClient)

        code = cli.run_cli([
            "--config-path", str(config_file),
            "generate", "--target", str(source_tree), "--poll-interval", "0",
        ])

        assert code == 0
        assert (source_tree / "README.md").read_text(encoding="utf-8") == "# Generated\n"

    def test_generate_invalid_target(self, config_file, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(cli, "AssistantAPIClient", FakeClient)

        code = cli.run_cli([
            "--config-path", str(config_file), "generate", "--target", str(tmp_path / "nope"),
        ])

        assert code == 1
        assert "not a valid directory" in capsys.readouterr().err
        assert FakeClient.instances == []

    def test_generate_invalid_concurrency(self, config_file, capsys):
        code = cli.run_cli(["--config-path", str(config_file), "generate", "-j", "0"])
        assert code == 1
        assert "max_concurrent_uploads" in capsys.readouterr().err

    def test_generate_run_failure(self, config_file, source_tree, monkeypatch, capsys):
        class Failing(FakeClient):
            def __init__(self, token):
                super().__init__(token)
                self.get_run.return_value = ThreadRun("run_1", "thread_1", "failed")

        monkeypatch.setattr(cli, "AssistantAPIClient", Failing)

        code = cli.run_cli([
            "--config-path", str(config_file),
            "generate", "--target", str(source_tree), "--poll-interval", "0",
        ])

        assert code == 1
        assert "error generating README" in capsys.readouterr().err
        assert not (source_tree / "README.md").exists()

    def test_generate_malformed_response(self, config_file, source_tree, monkeypatch, capsys):
        class Garbled(FakeClient):
            def __init__(self, token):
                super().__init__(token)
                self.get_run.side_effect = ServiceError(200, {"raw": "<html>gateway</html>"})

        monkeypatch.setattr(cli, "AssistantAPIClient", Garbled)

        code = cli.run_cli([
            "--config-path", str(config_file),
            "generate", "--target", str(source_tree), "--poll-interval", "0",
        ])

        assert code == 1
        assert "ERROR: error generating README" in capsys.readouterr().err
