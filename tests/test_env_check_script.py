"""Tests for the configuration preflight script."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from scripts import check_env

REQUIRED_ENV_KEYS = [
    "REPLICATE_API_TOKEN",
    "DEEPSEEK_API_KEY",
    "PATTERNS_PATH",
]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch):
    for key in REQUIRED_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield
    for key in REQUIRED_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write_env(env_path: Path, **values: str) -> Path:
    contents = "\n".join(f"{key}={value}" for key, value in values.items())
    env_path.write_text(contents + "\n", encoding="utf-8")
    return env_path


def _write_patterns(path: Path, *rows: str) -> Path:
    path.write_text(
        "\n".join(["name,category,direction,description", *rows]) + "\n",
        encoding="utf-8",
    )
    return path


def test_missing_env_file_is_a_runtime_error(tmp_path: Path) -> None:
    exit_code = check_env.main(["--env-file", str(tmp_path / ".missing-env")])
    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_missing_required_values_fail_validation(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = _write_env(tmp_path / ".env", DEEPSEEK_API_KEY="sk-deepseek")

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_VALIDATION_ERROR
    assert "REPLICATE_API_TOKEN" in capsys.readouterr().err


def test_missing_taxonomy_is_reported(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = _write_env(
        tmp_path / ".env",
        REPLICATE_API_TOKEN="r8_token",
        DEEPSEEK_API_KEY="sk-deepseek",
        PATTERNS_PATH=str(tmp_path / "missing.csv"),
    )

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_RUNTIME_ERROR
    assert "Pattern taxonomy" in capsys.readouterr().err


def test_taxonomy_without_usable_rows_is_reported(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    patterns = _write_patterns(tmp_path / "patterns.csv", "Broken,Row")
    env_file = _write_env(
        tmp_path / ".env",
        REPLICATE_API_TOKEN="r8_token",
        DEEPSEEK_API_KEY="sk-deepseek",
        PATTERNS_PATH=str(patterns),
    )

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_RUNTIME_ERROR
    assert "no usable rows" in capsys.readouterr().err


def test_report_masks_secrets_and_summarizes_taxonomy(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    patterns = _write_patterns(
        tmp_path / "patterns.csv",
        "Doji,Single,Neutral,Open equals close",
        "Bullish Engulfing,Two,Bullish,Green body engulfs the prior red body",
    )
    env_file = _write_env(
        tmp_path / ".env",
        REPLICATE_API_TOKEN="r8_abcdefghijklmnop",
        DEEPSEEK_API_KEY="sk-deepseek-secret",
        PATTERNS_PATH=str(patterns),
    )

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_OK
    out = capsys.readouterr().out
    assert "r8_abcdefghijklmnop" not in out
    assert "r8_a...mnop" in out
    assert "sk-deepseek-secret" not in out
    assert "deepseek-reasoner" in out
    assert "(2 patterns; Single, Two)" in out
