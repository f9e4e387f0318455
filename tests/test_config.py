from pathlib import Path

import pytest

from prospect_finsight.config import default_app_config, load_app_config, load_toml


def test_defaults_when_config_file_is_absent(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_app_config()

    assert config == default_app_config()
    assert config.industry == "default"
    assert config.ai_insights_enabled is True


def test_sections_are_parsed(tmp_path: Path) -> None:
    cfg = tmp_path / "finsight.toml"
    cfg.write_text(
        """
[analysis]
industry = "Retail"
currency = "CAD"
ai_insights_enabled = false

[display]
decimals = 4

[logging]
level = "debug"
""",
        encoding="utf-8",
    )

    config = load_app_config(str(cfg))

    assert config.industry == "retail"
    assert config.currency == "CAD"
    assert config.ai_insights_enabled is False
    assert config.decimals == 4
    assert config.log_level == "DEBUG"
    assert config.benchmarks_file is None


def test_reference_paths_are_relative_to_config_file(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "conf"
    cfg_dir.mkdir()
    cfg = cfg_dir / "finsight.toml"
    cfg.write_text(
        '[reference]\nbenchmarks_file = "tables/benchmarks.toml"\n',
        encoding="utf-8",
    )

    config = load_app_config(str(cfg))

    assert config.benchmarks_file == (cfg_dir / "tables" / "benchmarks.toml").resolve()
    assert config.estimation_file is None


def test_invalid_decimals_fall_back_to_default(tmp_path: Path) -> None:
    cfg = tmp_path / "finsight.toml"
    cfg.write_text('[display]\ndecimals = "many"\n', encoding="utf-8")

    assert load_app_config(str(cfg)).decimals == 2


def test_invalid_toml_raises_value_error(tmp_path: Path) -> None:
    cfg = tmp_path / "broken.toml"
    cfg.write_text("[analysis\nindustry = ", encoding="utf-8")

    with pytest.raises(ValueError):
        load_toml(cfg)


def test_explicit_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))
