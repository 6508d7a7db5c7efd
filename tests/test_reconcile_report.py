from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import shift_recon.database as db  # noqa: E402
from shift_recon.scripts.reconcile_report import main  # noqa: E402


@pytest.fixture()
def feeds(monkeypatch, tmp_path):
    engine = create_engine("sqlite:///:memory:", future=True)
    monkeypatch.setattr(db, "policy_engine", engine)
    monkeypatch.setattr(db, "PolicySessionLocal", sessionmaker(bind=engine, expire_on_commit=False, future=True))
    monkeypatch.setattr(db, "DATA_DIR", tmp_path)
    plan_rows = [
        {
            "employee": "E",
            "store": "S",
            "role": "Seller",
            "plan_start": f"2024-04-0{day}T09:00:00",
            "plan_end": f"2024-04-0{day}T17:00:00",
        }
        for day in range(1, 7)
    ]
    fact_rows = [{"employee": "E", "store": "S", "fact_start": "2024-04-01T09:10:00", "fact_end": "2024-04-01T17:00:00"}]
    (tmp_path / "plan.json").write_text(json.dumps(plan_rows), encoding="utf-8")
    (tmp_path / "fact.json").write_text(json.dumps(fact_rows), encoding="utf-8")
    try:
        yield tmp_path
    finally:
        engine.dispose()


def test_report_prints_capped_view(feeds, capsys) -> None:
    exit_code = main(["--start", "2024-04-01", "--end", "2024-04-06"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "[report] 6 plan shifts, 1 facts: 1 matched, 0 facts dropped." in out
    assert "E (S) [Seller]" in out
    assert "2024-04-01  plan 09:00-17:00  fact 09:10-17:00" in out
    assert "2024-04-05" not in out


def test_report_json_output(feeds, capsys) -> None:
    main(["--start", "2024-04-01", "--end", "2024-04-06", "--max-days", "2", "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert len(payload["E (S)"]["shifts"]) == 2


def test_report_exits_on_missing_feed(feeds) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--plan", str(feeds / "nope.json")])

    assert "plan feed" in str(excinfo.value.code)


def test_report_exits_on_bad_date(feeds) -> None:
    with pytest.raises(SystemExit):
        main(["--start", "April first"])


def test_report_exits_on_undecodable_feed(feeds) -> None:
    (feeds / "plan.json").write_bytes(b"[\xff]")

    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert "not valid UTF-8" in str(excinfo.value.code)


def test_policy_export_then_import(feeds, capsys) -> None:
    exported = feeds / "policy.json"

    assert main(["--export-policy", str(exported)]) == 0
    payload = json.loads(exported.read_text(encoding="utf-8"))
    assert payload["name"] == "Default Reconciliation"

    payload["name"] = "Two Day Window"
    payload["params"]["window"]["max_consecutive_days"] = 2
    edited = feeds / "edited.json"
    edited.write_text(json.dumps(payload), encoding="utf-8")
    assert main(["--import-policy", str(edited)]) == 0

    out = capsys.readouterr().out
    assert f"[report] Exported active policy to {exported}" in out
    assert "[report] Imported policy 'Two Day Window'" in out

    main(["--start", "2024-04-01", "--end", "2024-04-06", "--json"])
    view = json.loads(capsys.readouterr().out)
    assert len(view["E (S)"]["shifts"]) == 2


def test_policy_import_exits_on_missing_file(feeds) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--import-policy", str(feeds / "missing.json")])

    assert str(excinfo.value.code).startswith("[report]")
