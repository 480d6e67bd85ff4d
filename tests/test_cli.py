"""Tests for the orbit command line interface."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from mindorbit.cli import cli
from mindorbit.knowledge import JsonItemStore
from mindorbit.knowledge.schema import AnalysisResult
from mindorbit.llm.openai import APOLOGY_MESSAGE, OpenAIClient


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep the CLI from reconfiguring the root logger during tests."""
    with patch("mindorbit.cli.setup_colored_logging"):
        yield


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def env(tmp_path, data_dir, monkeypatch):
    """Point the CLI at a temporary data directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MINDORBIT_DATA_DIR", str(data_dir))
    monkeypatch.setenv("OPENAI_API_KEY", "test-api-key")
    return data_dir


@pytest.fixture
def stored_items(env, sample_items):
    JsonItemStore(env / "items.json").save(sample_items)
    return sample_items


@pytest.fixture
def analysis():
    return AnalysisResult(
        title="Sourdough Starter", summary="Feed it daily.", tags=["baking"], category="Health"
    )


class TestInit:
    def test_creates_directories(self, runner, env, tmp_path):
        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 0
        assert (env / "Inbox").is_dir()
        assert (tmp_path / ".env.example").exists()


class TestAdd:
    def test_add_text(self, runner, env, analysis):
        """Test capturing text from the command line."""
        with patch.object(OpenAIClient, "analyze_content", AsyncMock(return_value=analysis)):
            result = runner.invoke(cli, ["add", "Feed the starter every day"])

        assert result.exit_code == 0
        assert "Created: Sourdough Starter [Health]" in result.stdout
        items = JsonItemStore(env / "items.json").load()
        assert [i.content for i in items] == ["Feed the starter every day"]
        assert (env / "INDEX.md").exists()

    def test_add_from_stdin(self, runner, env, analysis):
        with patch.object(OpenAIClient, "analyze_content", AsyncMock(return_value=analysis)):
            result = runner.invoke(cli, ["add"], input="Piped thought\n")

        assert result.exit_code == 0
        assert JsonItemStore(env / "items.json").load()[0].content == "Piped thought\n"

    def test_add_url(self, runner, env, analysis):
        mock = AsyncMock(return_value=analysis)
        with patch.object(OpenAIClient, "analyze_content", mock):
            result = runner.invoke(cli, ["add", "--url", "Reading list: sourdough basics"])

        assert result.exit_code == 0
        assert JsonItemStore(env / "items.json").load()[0].type.value == "URL"

    def test_add_blank(self, runner, env):
        result = runner.invoke(cli, ["add", "   "])

        assert result.exit_code == 1
        assert "Error" in result.stderr

    def test_add_without_key(self, runner, env, monkeypatch):
        """Test that nothing is stored when no key is configured."""
        monkeypatch.delenv("OPENAI_API_KEY")

        result = runner.invoke(cli, ["add", "A thought"])

        assert result.exit_code == 1
        assert "API key" in result.stderr
        assert not (env / "items.json").exists()

    def test_add_fallback_warns(self, runner, env):
        with patch.object(
            OpenAIClient, "analyze_content", AsyncMock(return_value=AnalysisResult.fallback())
        ):
            result = runner.invoke(cli, ["add", "A thought"])

        assert result.exit_code == 0
        assert "default metadata" in result.stderr
        assert "[Uncategorized]" in result.stdout


class TestBrowse:
    def test_list(self, runner, stored_items):
        result = runner.invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "[Science] Black Holes" in result.stdout
        assert "Nodes: 3 | Categories: 2" in result.stdout

    def test_list_category(self, runner, stored_items):
        result = runner.invoke(cli, ["list", "--category", "Art"])

        assert "Impressionism" in result.stdout
        assert "Black Holes" not in result.stdout

    def test_list_empty(self, runner, env):
        result = runner.invoke(cli, ["list"])

        assert "No knowledge stored yet." in result.stdout

    def test_list_markdown(self, runner, stored_items):
        result = runner.invoke(cli, ["list", "--markdown"])

        assert "### Science" in result.stdout

    def test_show(self, runner, stored_items):
        result = runner.invoke(cli, ["show", "a"])

        assert result.exit_code == 0
        assert "Black Holes" in result.stdout
        assert "Category: Science" in result.stdout

    def test_show_missing(self, runner, stored_items):
        result = runner.invoke(cli, ["show", "missing"])

        assert result.exit_code == 1

    def test_delete(self, runner, stored_items, env):
        result = runner.invoke(cli, ["delete", "b"])

        assert result.exit_code == 0
        assert [i.id for i in JsonItemStore(env / "items.json").load()] == ["a", "c"]

    def test_delete_missing(self, runner, stored_items):
        result = runner.invoke(cli, ["delete", "missing"])

        assert result.exit_code == 1
        assert "Item not found" in result.stderr

    def test_rediscover(self, runner, stored_items):
        result = runner.invoke(cli, ["rediscover"])

        assert result.stdout.startswith("Rediscover this: ")

    def test_rediscover_empty(self, runner, env):
        result = runner.invoke(cli, ["rediscover"])

        assert "Nothing to rediscover yet." in result.stdout


class TestGraph:
    def test_graph_json(self, runner, stored_items):
        """Test that the graph and a settled layout are printed as JSON."""
        result = runner.invoke(cli, ["graph"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [n["id"] for n in data["nodes"]] == ["a", "b", "c"]
        assert data["edges"] == [{"source": "a", "target": "b"}]
        assert set(data["positions"]) == {"a", "b", "c"}
        assert data["ticks"] > 0

    def test_graph_without_layout(self, runner, stored_items):
        data = json.loads(runner.invoke(cli, ["graph", "--no-layout"]).stdout)

        assert "positions" not in data

    def test_empty_graph(self, runner, env):
        result = runner.invoke(cli, ["graph"])

        assert "Your galaxy is empty" in result.stderr
        assert json.loads(result.stdout)["nodes"] == []


class TestChat:
    def test_ask(self, runner, stored_items):
        with patch.object(OpenAIClient, "answer_question", AsyncMock(return_value="Dense stars.")):
            result = runner.invoke(cli, ["ask", "What are black holes?"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "Dense stars."

    def test_ask_failure_apologizes(self, runner, stored_items):
        with patch.object(
            OpenAIClient, "answer_question", AsyncMock(side_effect=RuntimeError("down"))
        ):
            result = runner.invoke(cli, ["ask", "What are black holes?"])

        assert result.exit_code == 0
        assert APOLOGY_MESSAGE in result.stdout

    def test_ask_without_key(self, runner, stored_items, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")

        result = runner.invoke(cli, ["ask", "Anything?"])

        assert "Please configure your API Key." in result.stdout

    def test_interactive_chat(self, runner, stored_items):
        mock = AsyncMock(return_value="Dense stars.")
        with patch.object(OpenAIClient, "answer_question", mock):
            result = runner.invoke(cli, ["chat"], input="What are black holes?\nexit\n")

        assert result.exit_code == 0
        assert "3 knowledge nodes" in result.stdout
        assert "Orbit: Dense stars." in result.stdout
        mock.assert_awaited_once()


class TestServe:
    def test_serve_uses_port_option(self, runner, env):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(cli, ["serve", "--port", "9999"])

        assert result.exit_code == 0
        assert mock_run.call_args.kwargs["port"] == 9999
