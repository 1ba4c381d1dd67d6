"""Tests for linkpulse CLI modules."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from linkpulse import cli_config
from linkpulse.cli import _load_config, _run_check_async, build_options, main
from linkpulse.cli_config import load_config
from linkpulse.cli_output import (
    format_result_text,
    format_results_markdown,
    format_results_text,
    results_to_json,
    write_output,
)
from linkpulse.cli_parsers import parse_args
from linkpulse.messages import Diagnostic
from linkpulse.result import CheckResult
from linkpulse.site import SiteCheckResult

ROOT = "https://example.com/"


def _alive(url: str = ROOT, final: str = ROOT, permanent=None) -> CheckResult:
    return CheckResult(request_url=url, status="alive", url=final, permanent=permanent)


def _dead(url: str = ROOT) -> CheckResult:
    return CheckResult(
        request_url=url,
        status="dead",
        messages=[Diagnostic(rule_id="dead", reason="gone", fatal=True)],
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "LINKPULSE_TIMEOUT",
        "LINKPULSE_MAX_REDIRECTS",
        "LINKPULSE_MAX_RETRIES",
        "LINKPULSE_USER_AGENT",
        "LINKPULSE_ENV_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestParseArgs:
    def test_defaults(self):
        args = parse_args(["https://example.com"])
        assert args.urls == ["https://example.com"]
        assert args.json_output is False
        assert args.output is None
        assert args.site is False
        assert args.max_depth == 1
        assert args.max_pages == 25
        assert args.concurrency == 8
        assert args.check_anchor is None
        assert args.find_urls is None
        assert args.allow_anchor == []
        assert args.env_file is None
        assert args.verbose is False

    def test_flags(self):
        args = parse_args(
            [
                "https://a.example",
                "https://b.example",
                "--json",
                "-o",
                "out.json",
                "--timeout",
                "500",
                "--max-retries",
                "0",
                "--no-anchors",
                "--no-find-urls",
                "--no-meta-refresh",
                "--no-clobber-prefix",
                "--allow-anchor",
                "github",
                "^L",
                "--allow-anchor",
                ".",
                "^x",
                "--env-file",
                "ci.env",
                "-v",
            ]
        )
        assert args.urls == ["https://a.example", "https://b.example"]
        assert args.json_output is True
        assert args.output == "out.json"
        assert args.timeout == 500
        assert args.max_retries == 0
        assert args.check_anchor is False
        assert args.find_urls is False
        assert args.follow_meta_http_equiv is False
        assert args.resolve_clobber_prefix is False
        assert args.allow_anchor == [["github", "^L"], [".", "^x"]]
        assert args.env_file == "ci.env"
        assert args.verbose is True

    def test_requires_url(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestBuildOptions:
    def test_defaults_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINKPULSE_MAX_REDIRECTS", "2")
        options = build_options(parse_args([ROOT]))
        assert options.max_redirects == 2
        assert options.check_anchor is True

    def test_flags_win_over_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINKPULSE_MAX_RETRIES", "4")
        options = build_options(
            parse_args([ROOT, "--max-retries", "0", "--no-anchors", "--allow-anchor", "a", "b"])
        )
        assert options.max_retries == 0
        assert options.check_anchor is False
        assert len(options.anchor_allowlist) == 2


class TestFormatting:
    def test_alive_line(self):
        assert format_result_text(_alive()) == f"alive  {ROOT}"

    def test_redirect_line(self):
        text = format_result_text(_alive(ROOT, ROOT + "to", permanent=True))
        assert text == f"alive  {ROOT} -> {ROOT}to (permanent)"

    def test_dead_with_diagnostics(self):
        assert format_result_text(_dead()).splitlines() == [
            f"dead   {ROOT}",
            "  dead: gone",
        ]

    def test_summary_line(self):
        text = format_results_text(
            [_alive(), _dead()], {"total": 2, "alive": 1, "dead": 1, "warnings": 0}
        )
        assert text.endswith("2 checked: 1 alive, 1 dead, 0 warning(s)")

    def test_markdown(self):
        text = format_results_markdown([_dead()])
        assert "# Link check: 1 URL(s)" in text
        assert f"## dead: {ROOT}" in text
        assert "**error** `dead`: gone" in text

    def test_json_list(self):
        data = json.loads(results_to_json([_alive()]))
        assert data[0]["status"] == "alive"

    def test_json_with_stats(self):
        data = json.loads(results_to_json([_alive()], {"total": 1}))
        assert data["stats"] == {"total": 1}
        assert data["results"][0]["url"] == ROOT


class TestWriteOutput:
    def test_stdout(self, capsys: pytest.CaptureFixture):
        write_output([_alive()], None, json_output=False)
        assert capsys.readouterr().out.strip() == f"alive  {ROOT}"

    def test_file(self, tmp_path: Path):
        path = tmp_path / "nested" / "report.json"
        write_output([_dead()], str(path), json_output=True)
        data = json.loads(path.read_text())
        assert data[0]["status"] == "dead"


class TestRunCheckAsync:
    @pytest.mark.asyncio
    async def test_all_alive(self, capsys: pytest.CaptureFixture):
        fake = AsyncMock(return_value=[_alive()])
        with patch("linkpulse.check_urls_async", new=fake):
            code = await _run_check_async(parse_args([ROOT, "--concurrency", "3"]))
        assert code == 0
        assert fake.await_args.kwargs["concurrency"] == 3
        assert "alive" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_any_dead(self):
        fake = AsyncMock(return_value=[_alive(), _dead(ROOT + "x")])
        with patch("linkpulse.check_urls_async", new=fake):
            code = await _run_check_async(parse_args([ROOT, ROOT + "x"]))
        assert code == 1

    @pytest.mark.asyncio
    async def test_site(self, tmp_path: Path):
        site = SiteCheckResult(
            results=[_alive()], stats={"total": 1, "alive": 1, "dead": 0, "warnings": 0}
        )
        fake = AsyncMock(return_value=site)
        output = tmp_path / "site.json"
        with patch("linkpulse.check_site_async", new=fake):
            code = await _run_check_async(
                parse_args([ROOT, "--site", "--max-depth", "2", "--json", "-o", str(output)])
            )
        assert code == 0
        assert fake.await_args.kwargs["max_depth"] == 2
        assert json.loads(output.read_text())["stats"]["alive"] == 1

    @pytest.mark.asyncio
    async def test_site_requires_single_url(self):
        code = await _run_check_async(parse_args([ROOT, ROOT + "x", "--site"]))
        assert code == 1


class TestMain:
    def test_success(self):
        with patch("linkpulse.cli._load_config"), patch(
            "linkpulse.cli._run_check_async", new_callable=AsyncMock
        ) as mock:
            mock.return_value = 0
            assert main([ROOT]) == 0

    def test_error(self):
        with patch("linkpulse.cli._load_config"), patch(
            "linkpulse.cli._run_check_async",
            new_callable=AsyncMock,
            side_effect=Exception("error"),
        ):
            assert main([ROOT]) == 1

    def test_interrupted(self):
        with patch("linkpulse.cli._load_config"), patch(
            "linkpulse.cli._run_check_async",
            new_callable=AsyncMock,
            side_effect=KeyboardInterrupt,
        ):
            assert main([ROOT]) == 130


class TestLoadConfig:
    def _load(self, tmp_path: Path, load_env=None, copy_file=None, env_file=None):
        load_env = load_env or MagicMock(return_value=True)
        copy_file = copy_file or MagicMock()
        config_dir = tmp_path / "config"
        self.loaded = load_config(
            config_dir=config_dir,
            config_env_file=config_dir / ".env",
            cwd=tmp_path / "cwd",
            load_env=load_env,
            copy_file=copy_file,
            env_file=env_file,
        )
        return load_env, copy_file

    def test_prefers_local_env(self, tmp_path: Path):
        (tmp_path / "cwd").mkdir()
        local = tmp_path / "cwd" / ".env"
        local.write_text("LINKPULSE_TIMEOUT=1\n")

        load_env, copy_file = self._load(tmp_path)

        load_env.assert_called_once_with(local)
        copy_file.assert_not_called()

    def test_falls_back_to_config_dir(self, tmp_path: Path):
        (tmp_path / "config").mkdir()
        config_env = tmp_path / "config" / ".env"
        config_env.write_text("LINKPULSE_TIMEOUT=1\n")

        load_env, _ = self._load(tmp_path)

        load_env.assert_called_once_with(config_env)

    def test_seeds_from_example(self, tmp_path: Path):
        load_env, copy_file = self._load(tmp_path)

        example = Path(cli_config.__file__).parent.parent / ".env.example"
        if not example.is_file():
            copy_file.assert_not_called()
            return
        copy_file.assert_called_once_with(example, tmp_path / "config" / ".env")
        load_env.assert_called_once_with(tmp_path / "config" / ".env")
        assert (tmp_path / "config").is_dir()

    def test_copy_failure_is_not_fatal(self, tmp_path: Path):
        load_env, _ = self._load(tmp_path, copy_file=MagicMock(side_effect=OSError("ro")))
        load_env.assert_not_called()
        assert self.loaded is None

    def test_explicit_env_file_wins(self, tmp_path: Path):
        (tmp_path / "cwd").mkdir()
        (tmp_path / "cwd" / ".env").write_text("LINKPULSE_TIMEOUT=1\n")
        explicit = tmp_path / "ci.env"
        explicit.write_text("LINKPULSE_MAX_RETRIES=0\n")

        load_env, _ = self._load(tmp_path, env_file=explicit)

        load_env.assert_called_once_with(explicit)
        assert self.loaded == explicit

    def test_missing_env_file_falls_back(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ):
        (tmp_path / "cwd").mkdir()
        local = tmp_path / "cwd" / ".env"
        local.write_text("LINKPULSE_TIMEOUT=1\n")

        load_env, _ = self._load(tmp_path, env_file=tmp_path / "missing.env")

        load_env.assert_called_once_with(local)
        assert self.loaded == local
        assert "missing.env not found" in caplog.text

    def test_warns_about_unknown_settings(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ):
        (tmp_path / "cwd").mkdir()
        (tmp_path / "cwd" / ".env").write_text(
            "LINKPULSE_TIMEOUTS=1\nLINKPULSE_MAX_RETRIES=0\nOTHER_TOOL_SETTING=x\n"
        )

        self._load(tmp_path)

        assert "Unknown setting LINKPULSE_TIMEOUTS" in caplog.text
        assert "LINKPULSE_MAX_RETRIES" not in caplog.text
        assert "OTHER_TOOL_SETTING" not in caplog.text


class TestCliLoadConfig:
    def test_env_file_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINKPULSE_ENV_FILE", "~/ci.env")
        with patch("linkpulse.cli.load_config") as mock:
            _load_config()
        assert mock.call_args.kwargs["env_file"] == Path("~/ci.env").expanduser()

    def test_flag_wins_over_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINKPULSE_ENV_FILE", "env.env")
        with patch("linkpulse.cli.load_config") as mock:
            _load_config("flag.env")
        assert mock.call_args.kwargs["env_file"] == Path("flag.env")

    def test_default_search(self):
        with patch("linkpulse.cli.load_config") as mock:
            _load_config()
        assert mock.call_args.kwargs["env_file"] is None
