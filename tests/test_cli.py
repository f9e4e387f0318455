import json
from pathlib import Path

import pytest

from prospect_finsight import __version__
from prospect_finsight.cli import EXIT_DATA_UNAVAILABLE, main


@pytest.fixture(autouse=True)
def _no_local_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)


def _upload(tmp_path: Path, body: str, name: str = "acme.csv") -> str:
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    return str(path)


def test_version(capsys) -> None:
    assert main(["--version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_json_output(tmp_path: Path, capsys) -> None:
    upload = _upload(
        tmp_path,
        "field,value\nrevenue,2840000\nexpenses,2156000\nassets,10500000\nliabilities,3800000\n",
    )

    code = main(
        ["--company", "acme", "--upload", upload, "--industry", "technology", "--format", "json"]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["status"] == "ok"
    assert payload["company_id"] == "acme"
    assert payload["industry"] == "technology"
    assert payload["health_score"]["total"] == 100


def test_table_output_with_history(tmp_path: Path, capsys) -> None:
    upload = _upload(
        tmp_path,
        "period_start,revenue,expenses,assets,liabilities\n"
        "2025-01-01,2840000,2156000,10500000,3800000\n",
    )
    history = _upload(
        tmp_path,
        "period_id,period_start,revenue,expenses,assets,liabilities\n"
        "2024,2024-01-01,2000000,1900000,9000000,4000000\n",
        name="history.csv",
    )

    code = main(["--company", "acme", "--upload", upload, "--history", history])

    out = capsys.readouterr().out
    assert code == 0
    assert "Health score: 100/100 (excellent)" in out
    assert "=== Trends ===" in out
    assert "=== Risks ===" in out


def test_all_zero_data_exits_with_data_unavailable(tmp_path: Path, capsys) -> None:
    upload = _upload(tmp_path, "revenue,expenses,assets,liabilities\n0,0,0,0\n")

    code = main(["--company", "acme", "--upload", upload])

    assert code == EXIT_DATA_UNAVAILABLE
    assert "No usable financial data for acme" in capsys.readouterr().out


def test_missing_source_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--company", "acme"])
    assert excinfo.value.code == 2


def test_missing_history_file_is_a_usage_error(tmp_path: Path) -> None:
    upload = _upload(tmp_path, "revenue\n1000\n")

    with pytest.raises(SystemExit):
        main(["--upload", upload, "--history", str(tmp_path / "none.csv")])


def test_dated_history_with_undated_upload_is_a_usage_error(tmp_path: Path, capsys) -> None:
    upload = _upload(tmp_path, "revenue,expenses,assets,liabilities\n1000,800,500,200\n")
    history = _upload(
        tmp_path,
        "period_id,period_start,revenue\n2024,2024-01-01,900\n",
        name="history.csv",
    )

    with pytest.raises(SystemExit) as excinfo:
        main(["--upload", upload, "--history", history])

    assert excinfo.value.code == 2
    assert "dated and undated" in capsys.readouterr().err
