"""
Tests for the vodup command line in vodup/commands/
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from vodup.commands.app import app
from vodup.commands.factory import SignFactory

runner = CliRunner()

UPLOAD_AUTH = {
    "AccessKeyID": "AKTPYjE0ZTYxNTI5ZGU0",
    "SecretAccessKey": "c2VjcmV0LWtleS1mb3ItdGVzdA==",
    "SessionToken": "STSeyJMVE1Ub2tlbiI6IiJ9",
}


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger("vodup")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def auth_file(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text(json.dumps({"data": {"upload_auth": UPLOAD_AUTH}}), encoding="utf-8")
    return str(path)


class TestSignCommand:
    """Tests for `vodup sign`."""

    def test_prints_signed_headers(self, auth_file):
        """The signed URL and headers are printed."""
        result = runner.invoke(
            app,
            [
                "sign",
                "GET",
                "https://vod.bytedanceapi.com/",
                "--auth",
                auth_file,
                "-q",
                "Version=2020-11-19",
                "-q",
                "Action=ApplyUploadInner",
                "-H",
                "Sec-Gpc: 1",
            ],
        )
        assert result.exit_code == 0, result.output
        assert (
            "URL: https://vod.bytedanceapi.com/?Action=ApplyUploadInner&Version=2020-11-19"
            in result.output
        )
        assert f"Authorization: AWS4-HMAC-SHA256 Credential={UPLOAD_AUTH['AccessKeyID']}/" in result.output
        assert "SignedHeaders=host;sec-gpc;x-amz-date;x-amz-security-token" in result.output
        assert f"X-Amz-Security-Token: {UPLOAD_AUTH['SessionToken']}" in result.output
        assert "Sec-Gpc: 1" in result.output

    def test_verbose_shows_canonical_request(self, auth_file):
        """--verbose adds the canonical request and string to sign."""
        result = runner.invoke(
            app,
            ["sign", "post", "https://vod.bytedanceapi.com/", "--auth", auth_file, "-d", "{}", "-v"],
        )
        assert result.exit_code == 0, result.output
        assert "----- canonical request -----" in result.output
        assert "\nPOST\n/\n" in result.output
        assert "AWS4-HMAC-SHA256\n" in result.output

    def test_missing_access_key(self, tmp_path):
        """An authorization without AccessKeyID fails with a readable error."""
        path = tmp_path / "auth.json"
        path.write_text(json.dumps({"SecretAccessKey": "x"}), encoding="utf-8")
        result = runner.invoke(
            app, ["sign", "GET", "https://vod.bytedanceapi.com/", "--auth", str(path)]
        )
        assert result.exit_code == 1
        assert "Missing credential: access_key" in result.output

    def test_malformed_url(self, auth_file):
        """A URL without a host is rejected."""
        result = runner.invoke(app, ["sign", "GET", "not-a-url", "--auth", auth_file])
        assert result.exit_code == 1
        assert "Malformed URL" in result.output

    def test_bad_header_option(self, auth_file):
        """Headers must be NAME:VALUE."""
        result = runner.invoke(
            app,
            ["sign", "GET", "https://vod.bytedanceapi.com/", "--auth", auth_file, "-H", "broken"],
        )
        assert result.exit_code == 1
        assert "Expected NAME:VALUE" in result.output


class TestUploadCommand:
    """Tests for `vodup upload` failures that stop before the network."""

    def test_missing_file(self, auth_file, tmp_path):
        """A missing media file exits with status 1."""
        result = runner.invoke(
            app,
            ["upload", str(tmp_path / "missing.mp4"), "--auth", auth_file, "--user-id", "42"],
        )
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_missing_auth_file(self, tmp_path):
        """A missing authorization file exits with status 1."""
        media = tmp_path / "video.mp4"
        media.write_bytes(b"x")
        result = runner.invoke(
            app,
            ["upload", str(media), "--auth", str(tmp_path / "nope.json"), "--user-id", "42"],
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_concurrency(self, auth_file, tmp_path):
        """Concurrency below one is rejected by the option parser."""
        media = tmp_path / "video.mp4"
        media.write_bytes(b"x")
        result = runner.invoke(
            app,
            ["upload", str(media), "--auth", auth_file, "--user-id", "42", "--concurrency", "0"],
        )
        assert result.exit_code != 0


class TestSignFactory:
    """Tests for SignFactory.parse_pairs."""

    def test_parse_pairs(self):
        """Pairs split on the first separator and repeated names collect."""
        pairs = SignFactory.parse_pairs(["a=1", "b = x=y", "a=2"], "=")
        assert pairs == {"a": ["1", "2"], "b": ["x=y"]}

    def test_parse_pairs_rejects_missing_separator(self):
        """Items without the separator are an error."""
        with pytest.raises(ValueError):
            SignFactory.parse_pairs(["novalue"], "=")
