import json
from decimal import Decimal

import pytest

from scripts import export_snapshot, run_assessments
from tax_engine.core.models import TaxType
from tests.fixtures.engine_inputs import make_request

D = Decimal


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("RATE_SNAPSHOT_PATH", "ENGINE_LOG_DIR", "ENGINE_LOG_LEVEL", "ASSESSMENT_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)


def _write_requests(path, requests):
    path.write_text(json.dumps([r.model_dump(mode="json") for r in requests]), encoding="utf-8")


def test_runner_writes_outcomes(tmp_path, capsys):
    requests_path = tmp_path / "requests.json"
    output_path = tmp_path / "out.json"
    _write_requests(requests_path, [make_request(), make_request(TaxType.GST, client_id="SL-GST")])

    code = run_assessments.main(
        ["--requests", str(requests_path), "--output", str(output_path), "--workers", "2"]
    )

    assert code == 0
    printed = capsys.readouterr().out
    assert "SL-000123: total_due=45000.00" in printed
    assert "SL-GST: total_due=100000.00" in printed
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["registry_version"] == "SL-FA2020"
    assert [o["ok"] for o in payload["outcomes"]] == [True, True]
    assert len(payload["outcomes"][0]["fingerprint"]) == 64
    assert payload["outcomes"][1]["result"]["total_due"] == "100000.00"


def test_runner_reports_failures(tmp_path, capsys):
    requests_path = tmp_path / "requests.json"
    output_path = tmp_path / "out.json"
    _write_requests(requests_path, [make_request(client_id="SL-BAD", amount_paid_to_date=D("-5"))])

    code = run_assessments.main(["--requests", str(requests_path), "--output", str(output_path)])

    assert code == 1
    assert "SL-BAD: FAILED at validation (NEGATIVE_OR_INVALID_AMOUNT)" in capsys.readouterr().out
    failure = json.loads(output_path.read_text(encoding="utf-8"))["outcomes"][0]
    assert failure == {
        "ok": False,
        "client_id": "SL-BAD",
        "stage": "validation",
        "code": "NEGATIVE_OR_INVALID_AMOUNT",
        "summary": failure["summary"],
    }
    assert failure["summary"]


def test_runner_uses_exported_snapshot(tmp_path, capsys):
    snapshot_path = tmp_path / "rates.json"
    export_snapshot.main([str(snapshot_path)])
    requests_path = tmp_path / "requests.json"
    _write_requests(requests_path, [make_request()])

    code = run_assessments.main(["--requests", str(requests_path), "--snapshot", str(snapshot_path)])

    assert code == 0
    assert "total_due=45000.00" in capsys.readouterr().out
