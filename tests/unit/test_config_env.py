"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from reportflow.common.env import (
    parse_flag,
    parse_positive_float,
    parse_positive_int,
    read_optional_str,
    read_str,
)
from reportflow.orchestrator.config import OrchestratorConfig
from reportflow.orchestrator.runtime import OrchestratorSettings
from reportflow.reports.models import ArtifactKind

_VAR = "REPORTFLOW_TEST_SETTING"


class TestEnvHelpers:
    """Parsing of individual variables."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            pytest.param(None, "fallback", id="unset"),
            pytest.param("   ", "fallback", id="blank"),
            pytest.param(" value ", "value", id="stripped"),
        ],
    )
    def test_read_str(
        self, monkeypatch: pytest.MonkeyPatch, raw: str | None, expected: str
    ) -> None:
        """Blank values fall back to the default."""
        if raw is None:
            monkeypatch.delenv(_VAR, raising=False)
        else:
            monkeypatch.setenv(_VAR, raw)

        assert read_str(_VAR, "fallback") == expected

    def test_read_optional_str(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Blank optional values read as None."""
        monkeypatch.setenv(_VAR, "")
        assert read_optional_str(_VAR) is None
        monkeypatch.setenv(_VAR, "redis://cache")
        assert read_optional_str(_VAR) == "redis://cache"

    def test_positive_int(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Integers are parsed and blank values keep the default."""
        monkeypatch.setenv(_VAR, "")
        assert parse_positive_int(_VAR, 3) == 3
        monkeypatch.setenv(_VAR, "12")
        assert parse_positive_int(_VAR, 3) == 12

    @pytest.mark.parametrize(
        ("raw", "match"),
        [
            pytest.param("many", "must be an integer", id="malformed"),
            pytest.param("0", "must be positive", id="zero"),
            pytest.param("-2", "must be positive", id="negative"),
        ],
    )
    def test_positive_int_rejects(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, match: str
    ) -> None:
        """Rejections name the variable."""
        monkeypatch.setenv(_VAR, raw)

        with pytest.raises(ValueError, match=match) as excinfo:
            parse_positive_int(_VAR, 3)

        assert _VAR in str(excinfo.value)

    @pytest.mark.parametrize(
        ("raw", "match"),
        [
            pytest.param("soon", "must be a number", id="malformed"),
            pytest.param("0", "positive finite", id="zero"),
            pytest.param("nan", "positive finite", id="nan"),
            pytest.param("inf", "positive finite", id="infinite"),
            pytest.param("-inf", "positive finite", id="negative-infinite"),
        ],
    )
    def test_positive_float_rejects(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, match: str
    ) -> None:
        """Timeouts must be positive numbers."""
        monkeypatch.setenv(_VAR, raw)

        with pytest.raises(ValueError, match=match):
            parse_positive_float(_VAR, 1.0)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("TRUE", True), (" yes ", True), ("0", False), ("", False)],
    )
    def test_parse_flag(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
    ) -> None:
        """Only the usual truthy spellings enable a flag."""
        monkeypatch.setenv(_VAR, raw)

        assert parse_flag(_VAR) is expected


class TestOrchestratorConfig:
    """Deadlines and retry limits."""

    def test_defaults(self) -> None:
        """Defaults favour a single slow generator over fast failure."""
        config = OrchestratorConfig()

        assert config.join_timeout_s == 60.0
        assert config.delete_max_attempts == 3
        assert config.delete_backoff_s == 1.0
        assert config.deletion_sweep_age_s == 300.0

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Every field has a REPORTFLOW_* override."""
        monkeypatch.setenv("REPORTFLOW_JOIN_TIMEOUT_S", "15")
        monkeypatch.setenv("REPORTFLOW_DELETE_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("REPORTFLOW_DELETE_BACKOFF_S", "0.5")
        monkeypatch.setenv("REPORTFLOW_DELETION_SWEEP_AGE_S", "90")

        config = OrchestratorConfig.from_env()

        assert config == OrchestratorConfig(
            join_timeout_s=15.0,
            delete_max_attempts=5,
            delete_backoff_s=0.5,
            deletion_sweep_age_s=90.0,
        )

    def test_from_env_rejects_zero_attempts(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """At least one delete attempt is required."""
        monkeypatch.setenv("REPORTFLOW_DELETE_MAX_ATTEMPTS", "0")

        with pytest.raises(ValueError, match="REPORTFLOW_DELETE_MAX_ATTEMPTS"):
            OrchestratorConfig.from_env()

    @pytest.mark.parametrize(
        ("overrides", "match"),
        [
            pytest.param(
                {"delete_max_attempts": 0}, "delete_max_attempts", id="no-attempts"
            ),
            pytest.param({"join_timeout_s": 0.0}, "join_timeout_s", id="zero-deadline"),
            pytest.param(
                {"delete_backoff_s": float("nan")}, "delete_backoff_s", id="nan-backoff"
            ),
            pytest.param(
                {"deletion_sweep_age_s": float("inf")},
                "deletion_sweep_age_s",
                id="infinite-sweep-age",
            ),
        ],
    )
    def test_rejects_invalid_values(
        self, overrides: dict[str, float], match: str
    ) -> None:
        """Direct construction is validated like WorkerPoolConfig."""
        with pytest.raises(ValueError, match=match):
            OrchestratorConfig(**overrides)  # type: ignore[arg-type]


class TestOrchestratorSettings:
    """Assembled settings for a runtime."""

    def test_generator_urls_per_kind(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Each generator kind reads its own URL variable."""
        monkeypatch.setenv("REPORTFLOW_PDF_GENERATOR_URL", "http://pdf:8000")
        monkeypatch.delenv("REPORTFLOW_SPREADSHEET_GENERATOR_URL", raising=False)

        settings = OrchestratorSettings.from_env()

        assert settings.generators[ArtifactKind.PDF].base_url == "http://pdf:8000"
        assert (
            settings.generators[ArtifactKind.SPREADSHEET].base_url
            == "http://localhost:9002"
        )
