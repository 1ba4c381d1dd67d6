"""Tests for linkpulse.config module."""

from __future__ import annotations

import re

import pytest

from linkpulse.config import (
    DEFAULT_ANCHOR_ALLOWLIST,
    DEFAULT_USER_AGENT,
    CheckOptions,
    OptionOverrides,
    apply_overrides,
    default_sleep,
    load_options_from_env,
)


class TestCheckOptions:
    def test_defaults(self):
        options = CheckOptions()
        assert options.check_anchor is True
        assert options.find_urls is True
        assert options.follow_meta_http_equiv is True
        assert options.max_redirects == 5
        assert options.max_retries == 1
        assert options.resolve_clobber_prefix is True
        assert options.timeout == 3000
        assert options.user_agent == DEFAULT_USER_AGENT
        assert options.headers == {}
        assert options.sleep is default_sleep

    def test_allowlist_is_compiled(self):
        options = CheckOptions()
        assert len(options.anchor_allowlist) == len(DEFAULT_ANCHOR_ALLOWLIST)
        url_pattern, fragment_pattern = options.anchor_allowlist[0]
        assert isinstance(url_pattern, re.Pattern)
        assert fragment_pattern.search(":~:text=hi")

    def test_accepts_compiled_patterns(self):
        options = CheckOptions(anchor_allowlist=[(re.compile("github"), "^L\\d+$")])
        url_pattern, fragment_pattern = options.anchor_allowlist[0]
        assert url_pattern.pattern == "github"
        assert fragment_pattern.search("L12")

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_redirects": -1}, {"max_retries": -1}, {"timeout": 0}],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            CheckOptions(**kwargs)

    def test_headers_are_not_shared(self):
        first = CheckOptions()
        first.headers["X-Test"] = "1"
        assert CheckOptions().headers == {}


class TestDefaultSleep:
    def test_cubic_backoff(self):
        assert [default_sleep(n) for n in (1, 2, 3)] == [1000, 8000, 27000]


class TestApplyOverrides:
    def test_only_set_values_change(self):
        base = CheckOptions(max_retries=3)
        options = apply_overrides(base, OptionOverrides(check_anchor=False, timeout=500))
        assert options.check_anchor is False
        assert options.timeout == 500
        assert options.max_retries == 3
        assert base.check_anchor is True

    def test_extra_allowlist_is_appended(self):
        options = apply_overrides(
            CheckOptions(),
            OptionOverrides(extra_anchor_allowlist=(("github\\.com", "^L\\d+"),)),
        )
        assert len(options.anchor_allowlist) == 2
        assert options.anchor_allowlist[1][1].search("L3")


class TestLoadOptionsFromEnv:
    def test_reads_variables(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LINKPULSE_TIMEOUT", "1500")
        monkeypatch.setenv("LINKPULSE_MAX_REDIRECTS", "2")
        monkeypatch.setenv("LINKPULSE_MAX_RETRIES", "0")
        monkeypatch.setenv("LINKPULSE_USER_AGENT", "linkpulse-test")

        options = load_options_from_env()

        assert options.timeout == 1500
        assert options.max_redirects == 2
        assert options.max_retries == 0
        assert options.user_agent == "linkpulse-test"

    def test_invalid_values_are_ignored(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ):
        monkeypatch.setenv("LINKPULSE_MAX_RETRIES", "many")
        monkeypatch.delenv("LINKPULSE_TIMEOUT", raising=False)

        with caplog.at_level("WARNING"):
            options = load_options_from_env()

        assert options.max_retries == 1
        assert "LINKPULSE_MAX_RETRIES" in caplog.text

    def test_uses_base(self, monkeypatch: pytest.MonkeyPatch):
        for name in (
            "LINKPULSE_TIMEOUT",
            "LINKPULSE_MAX_REDIRECTS",
            "LINKPULSE_MAX_RETRIES",
            "LINKPULSE_USER_AGENT",
        ):
            monkeypatch.delenv(name, raising=False)

        options = load_options_from_env(CheckOptions(find_urls=False))
        assert options.find_urls is False
