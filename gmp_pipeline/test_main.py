"""End-to-end tests for the CLI modes with network and Sheets calls faked."""

from __future__ import annotations

from datetime import datetime

import pytest
import requests

from gmp_pipeline import config, main
from gmp_pipeline.io import save_html, sheets
from gmp_pipeline.scraper import csv_source, gmp_source
from gmp_pipeline.scraper.models import Status

CSV_TEXT = """IPO,GMP,Date,Kostak,SubjectToSauda,Status
Acme Ltd,₹45,14-18 Nov,100,2000,
Beta Corp,—,TBA,,,
Gamma Tech,-5,1-3 Nov,,,
,99,14-18 Nov,,,
Delta Foods,12,20-22 Nov,,,Listed
"""

NOW_ARG = "2025-11-16T12:00:00+05:30"


class FakeWorksheet:
    title = "Sheet1"

    def __init__(self, values):
        self.values = values
        self.updates = []

    def get_all_values(self):
        return [list(row) for row in self.values]

    def update(self, range_name=None, values=None, value_input_option=None):
        self.updates.append((range_name, values, value_input_option))


def render_argv(tmp_path, *extra):
    return [
        "--mode", "render",
        "--source-url", "https://sheet.example/export.csv",
        "--dest", str(tmp_path / "index.html"),
        "--fragment", str(tmp_path / "_gmp.html"),
        "--backup-dir", str(tmp_path / "backups"),
        "--now", NOW_ARG,
        *extra,
    ]


def test_resolve_now():
    assert main.resolve_now(NOW_ARG) == datetime(2025, 11, 16, 12, 0, tzinfo=config.TARGET_TZ)
    assert main.resolve_now("2025-11-16T06:30:00Z") == datetime(2025, 11, 16, 12, 0, tzinfo=config.TARGET_TZ)
    assert main.resolve_now("2025-11-16T12:00:00") == datetime(2025, 11, 16, 12, 0, tzinfo=config.TARGET_TZ)


@pytest.mark.parametrize("value", ["yesterday", "2025-13-40"])
def test_resolve_now_rejects_garbage(value):
    with pytest.raises(SystemExit) as exc:
        main.resolve_now(value)
    assert exc.value.code == 2


def test_render_records_groups_and_renders():
    records = csv_source.parse_csv_records(CSV_TEXT)
    groups, fragment = main.render_records(records, main.resolve_now(NOW_ARG), cap=20, show_batch=7)
    assert [row.name for row in groups[Status.ACTIVE]] == ["Acme Ltd"]
    assert [row.name for row in groups[Status.UPCOMING]] == ["Beta Corp"]
    assert [row.name for row in groups[Status.CLOSED]] == ["Delta Foods", "Gamma Tech"]
    assert 'data-filter="all">All (4)</button>' in fragment


def test_render_mode_writes_page(tmp_path, monkeypatch):
    monkeypatch.setattr(csv_source, "fetch_csv_text", lambda url, timeout=None: CSV_TEXT)
    dest = tmp_path / "index.html"
    dest.write_text("<html><body><h1>IPO GMP</h1><!-- GMP_TABLE --></body></html>", encoding="utf-8")

    main.main(render_argv(tmp_path))

    page = dest.read_text(encoding="utf-8")
    fragment = (tmp_path / "_gmp.html").read_text(encoding="utf-8")
    assert "<h1>IPO GMP</h1>" in page
    assert fragment in page
    assert "Acme Ltd" in fragment and "Delta Foods" in fragment
    assert len(list((tmp_path / "backups").iterdir())) == 1

    main.main(render_argv(tmp_path))
    assert dest.read_text(encoding="utf-8") == page
    index_backups = save_html.list_backups(dest, tmp_path / "backups")
    assert len(index_backups) == 2
    assert "<!-- GMP_TABLE -->" in index_backups[0].read_text(encoding="utf-8")
    assert len(save_html.list_backups(tmp_path / "_gmp.html", tmp_path / "backups")) == 1


def test_render_dry_run_writes_nothing(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(csv_source, "fetch_csv_text", lambda url, timeout=None: CSV_TEXT)
    main.main(render_argv(tmp_path, "--dry-run"))
    assert '<div id="gmp-wrapper">' in capsys.readouterr().out
    assert list(tmp_path.iterdir()) == []


def test_render_without_source_url_exits_2(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SOURCE_CSV_URL", None)
    with pytest.raises(SystemExit) as exc:
        main.main(["--mode", "render", "--dest", str(tmp_path / "index.html")])
    assert exc.value.code == 2


def test_render_fetch_failure_aborts_before_writing(tmp_path, monkeypatch):
    def failing_fetch(url, timeout=None):
        raise requests.HTTPError("503 Service Unavailable")

    monkeypatch.setattr(csv_source, "fetch_csv_text", failing_fetch)
    with pytest.raises(SystemExit) as exc:
        main.main(render_argv(tmp_path))
    assert exc.value.code == 1
    assert not (tmp_path / "index.html").exists()


def test_populate_mode_merges_into_sheet(monkeypatch, capsys):
    ws = FakeWorksheet(
        [
            ["IPO", "GMP", "Kostak", "SubjectToSauda", "Date", "Status", "Type"],
            ["Acme Ltd", "10", "", "", "", "", ""],
        ]
    )
    monkeypatch.setattr(config, "SERVICE_ACCOUNT_JSON", "{}")
    monkeypatch.setattr(config, "SHEET_ID", "sheet-id")
    monkeypatch.setattr(config, "DEFAULT_TYPE", "Mainboard")
    monkeypatch.setattr(
        gmp_source,
        "scrape_first_available",
        lambda urls, use_browser=False: [{"ipo": "Acme Ltd", "gmp": "45"}, {"ipo": "Beta Corp", "gmp": "7"}],
    )
    monkeypatch.setattr(sheets, "authorize", lambda service_account_json=None: object())
    monkeypatch.setattr(sheets, "open_worksheet", lambda client, sheet_id=None, worksheet=None: ws)

    main.main(["--mode", "populate", "--source-url", "https://gmp.example"])

    assert len(ws.updates) == 1
    range_name, values, option = ws.updates[0]
    assert (range_name, option) == ("A1", "RAW")
    assert values[1] == ["Acme Ltd", "45", "", "", "", "", "Mainboard"]
    assert values[2] == ["Beta Corp", "7", "", "", "", "", "Mainboard"]
    assert "Appended: 1" in capsys.readouterr().out


def test_populate_without_sources_exits_2(monkeypatch):
    monkeypatch.setattr(config, "SOURCE_URLS", [])
    with pytest.raises(SystemExit) as exc:
        main.main(["--mode", "populate"])
    assert exc.value.code == 2


def test_populate_with_no_parsed_rows_exits(monkeypatch):
    monkeypatch.setattr(config, "SERVICE_ACCOUNT_JSON", "{}")
    monkeypatch.setattr(config, "SHEET_ID", "sheet-id")
    monkeypatch.setattr(gmp_source, "scrape_first_available", lambda urls, use_browser=False: [])
    with pytest.raises(SystemExit) as exc:
        main.main(["--mode", "populate", "--source-url", "https://gmp.example"])
    assert exc.value.code == "No data parsed from any source."


def test_render_malformed_csv_aborts_before_writing(tmp_path, monkeypatch):
    monkeypatch.setattr(csv_source, "fetch_csv_text", lambda url, timeout=None: "IPO,GMP\nA,1\nB,2,3,4\n")
    with pytest.raises(SystemExit) as exc:
        main.main(render_argv(tmp_path))
    assert exc.value.code == 1
    assert not (tmp_path / "index.html").exists()


def test_bad_base64_credentials_only_break_sheet_modes(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "SERVICE_ACCOUNT_JSON", None)
    monkeypatch.setattr(config, "SERVICE_ACCOUNT_JSON_B64", "not base64!!")
    monkeypatch.setattr(config, "SHEET_ID", "sheet-id")
    monkeypatch.setattr(csv_source, "fetch_csv_text", lambda url, timeout=None: CSV_TEXT)
    monkeypatch.setattr(
        gmp_source,
        "scrape_first_available",
        lambda urls, use_browser=False: [{"ipo": "Acme Ltd", "gmp": "45"}],
    )

    main.main(render_argv(tmp_path))
    assert (tmp_path / "index.html").exists()

    with pytest.raises(SystemExit) as exc:
        main.main(["--mode", "populate", "--source-url", "https://gmp.example"])
    assert exc.value.code == 2
