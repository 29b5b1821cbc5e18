"""Unit tests for the command-line surface."""
import pandas as pd
import pytest

from ragu import cli
from ragu.rag.embedder import EmbeddingClient


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("EMBEDDING_DIMENSION", "2")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return monkeypatch


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("name,age\nrow-0,30\nrow-1,25\n")
    return path


def patch_embedder(monkeypatch, service):
    def build(settings, event_hook=None, transport=None):
        return EmbeddingClient(settings, event_hook=event_hook, transport=service.transport)

    monkeypatch.setattr(cli, "EmbeddingClient", build)


class TestParser:
    """Tests for argument parsing."""

    def test_ask_with_context(self):
        args = cli.build_parser().parse_args(["ask", "who?", "--context", "physics"])
        assert (args.command, args.query, args.context) == ("ask", "who?", "physics")
        assert args.no_answer is False

    def test_ctx_alias(self):
        args = cli.build_parser().parse_args(["ask", "who?", "--ctx", "physics"])
        assert args.context == "physics"

    def test_export_paths(self):
        args = cli.build_parser().parse_args(["export_to_csv", "in.csv", "out.csv"])
        assert (str(args.source), str(args.dest)) == ("in.csv", "out.csv")

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestExportCommand:
    """Tests for ``ragu export_to_csv``."""

    def test_success(self, cli_env, embedding_service, source, tmp_path, capsys):
        service = embedding_service(
            vectors={"row-0, 30": [1.0, 0.0], "row-1, 25": [0.0, 1.0]}
        )
        patch_embedder(cli_env, service)
        destination = tmp_path / "out.csv"

        status = cli.main(["export_to_csv", str(source), str(destination)])

        assert status == 0
        assert list(pd.read_csv(destination)["embeddings"]) == ["[1.0, 0.0]", "[0.0, 1.0]"]
        assert "Wrote 2 embedded rows" in capsys.readouterr().out

    def test_failure_exits_non_zero(self, cli_env, embedding_service, source, tmp_path, capsys):
        patch_embedder(cli_env, embedding_service(status_code=500))
        destination = tmp_path / "out.csv"

        status = cli.main(["export_to_csv", str(source), str(destination)])

        assert status == 1
        assert not destination.exists()
        assert "Error:" in capsys.readouterr().err

    def test_missing_source(self, cli_env, tmp_path):
        status = cli.main(["export_to_csv", str(tmp_path / "nope.csv"), str(tmp_path / "out.csv")])
        assert status == 1

    def test_invalid_configuration(self, cli_env, source, tmp_path):
        cli_env.setenv("EMBED_CHUNK_SIZE", "zero")
        status = cli.main(["export_to_csv", str(source), str(tmp_path / "out.csv")])
        assert status == 1
