"""Tests for the imagestudio command-line client."""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from imagestudio.adapters.base import GeneratedImage, ProviderError
from imagestudio.cli import build_parser, main


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'history.db'}"


@pytest.fixture
def mock_provider(png_b64):
    """Provider returned by the resolver for every CLI request."""
    provider = MagicMock()
    provider.supports.return_value = True
    provider.generate = AsyncMock(return_value=[GeneratedImage(b64_json=png_b64)])
    provider.create_variation = AsyncMock(return_value=[GeneratedImage(b64_json=png_b64)])
    with patch("imagestudio.services.generation.resolve_provider", return_value=provider):
        yield provider


class TestParser:
    """Tests for argument parsing."""

    def test_generate_defaults(self):
        args = build_parser().parse_args(["generate", "a fox"])
        assert args.model == "openai/dall-e-3"
        assert args.image == []

    def test_vary_defaults(self, tmp_path):
        args = build_parser().parse_args(["vary", str(tmp_path / "a.png")])
        assert args.model == "openai/dall-e-2"
        assert args.n == 1

    def test_history_requires_subcommand(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["history"])


class TestCommands:
    """End-to-end CLI runs against a temporary history database."""

    def test_generate_writes_images_and_history(self, db_url, tmp_path, mock_provider, capsys):
        """Test that generated images are saved and a history record is kept."""
        out_dir = tmp_path / "out"

        exit_code = main(["--db", db_url, "generate", "a fox", "--out", str(out_dir)])

        assert exit_code == 0
        saved = list(out_dir.glob("*.png"))
        assert len(saved) == 1
        assert saved[0].read_bytes().startswith(b"\x89PNG")

        capsys.readouterr()
        assert main(["--db", db_url, "history", "list"]) == 0
        listing = capsys.readouterr().out
        assert "openai/dall-e-3" in listing
        assert "1 image(s)" in listing
        assert "a fox" in listing

    def test_failed_request_is_recorded(self, db_url, mock_provider, capsys):
        """Test that a vendor failure exits non-zero and leaves a failure record."""
        mock_provider.generate.side_effect = ProviderError("OpenAI API error: 500 boom")

        exit_code = main(["--db", db_url, "generate", "a fox"])

        assert exit_code == 1
        assert "500 boom" in capsys.readouterr().err

        main(["--db", db_url, "history", "list"])
        assert "error: OpenAI API error: 500 boom" in capsys.readouterr().out

    def test_unexpected_error_is_reported(self, db_url, mock_provider, capsys):
        """Test that a non-vendor failure still exits cleanly with a message."""
        mock_provider.generate.side_effect = RuntimeError("decoder crashed")

        exit_code = main(["--db", db_url, "generate", "a fox"])

        assert exit_code == 1
        assert "Request failed: decoder crashed" in capsys.readouterr().err

    def test_vary_reads_image_file(self, db_url, tmp_path, mock_provider, png_b64):
        """Test that the source image is loaded from disk."""
        source = tmp_path / "source.png"
        source.write_bytes(b"\x89PNG\r\n\x1a\n")

        exit_code = main(
            ["--db", db_url, "vary", str(source), "--n", "2", "--out", str(tmp_path / "out")]
        )

        assert exit_code == 0
        params = mock_provider.create_variation.call_args.args[0]
        assert params.n == 2
        assert params.model == "dall-e-2"
        assert params.image.mime_type == "image/png"

    def test_missing_image_file(self, db_url, tmp_path, mock_provider, capsys):
        exit_code = main(["--db", db_url, "vary", str(tmp_path / "missing.png")])

        assert exit_code == 2
        assert "Cannot read image" in capsys.readouterr().err

    def test_history_delete_and_clear(self, db_url, mock_provider, capsys):
        """Test removing records from the CLI."""
        main(["--db", db_url, "generate", "first"])
        time.sleep(0.01)
        main(["--db", db_url, "generate", "second"])
        capsys.readouterr()

        main(["--db", db_url, "history", "list", "--limit", "1"])
        newest_id = capsys.readouterr().out.split()[0]

        assert main(["--db", db_url, "history", "delete", newest_id]) == 0
        capsys.readouterr()
        main(["--db", db_url, "history", "list"])
        remaining = capsys.readouterr().out
        assert newest_id not in remaining
        assert "first" in remaining

        assert main(["--db", db_url, "history", "clear"]) == 0
        capsys.readouterr()
        main(["--db", db_url, "history", "list"])
        assert "No history" in capsys.readouterr().out
