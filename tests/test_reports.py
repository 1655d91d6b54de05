import os
import re

from bay_inspector.reports import ReportStore, extract_health_summary, safe_serial

from conftest import SMART_REPORT_PASSED


def test_summary_from_ata_report():
    summary = extract_health_summary(SMART_REPORT_PASSED)

    assert summary.overall_health == "PASSED"
    assert summary.reallocated_sectors == "0"
    assert summary.pending_sectors == "2"
    assert summary.offline_uncorrectable == "0"
    assert len(summary.lines) == 4


def test_summary_keeps_composite_raw_values():
    report = "  5 Reallocated_Sector_Ct   0x0033   100   100   010    Pre-fail  Always       -       8 (0 0)\n"

    assert extract_health_summary(report).reallocated_sectors == "8 (0 0)"


def test_summary_from_scsi_report():
    summary = extract_health_summary("SMART Health Status: OK\n")

    assert summary.overall_health == "OK"
    assert summary.reallocated_sectors is None


def test_summary_tolerates_missing_fields():
    summary = extract_health_summary("Device Model: Foo\nSerial Number: 123\n")

    assert summary.to_dict() == {
        "overall_health": None,
        "reallocated_sectors": None,
        "pending_sectors": None,
        "offline_uncorrectable": None,
    }
    assert summary.lines == []


def test_safe_serial():
    assert safe_serial("WD-WCC4N1234567") == "WD-WCC4N1234567"
    assert re.fullmatch(r"AB_CD_12-[0-9a-f]{8}", safe_serial("AB/CD 12"))
    assert safe_serial("AB/CD 12") == safe_serial("AB/CD 12")
    assert safe_serial("") == "unknown"


def test_distinct_serials_never_share_report_files(tmp_path):
    store = ReportStore(str(tmp_path / "logs"))

    assert store.after_path("WD 123") != store.after_path("WD/123")
    assert store.after_path("WD 123") != store.after_path("WD_123")

    store.write_after("WD 123", "first drive")
    store.write_after("WD/123", "second drive")

    with open(store.after_path("WD 123")) as f:
        assert f.read() == "first drive\n"
    assert len(os.listdir(tmp_path / "logs")) == 2


def test_report_paths_and_overwrite(tmp_path):
    store = ReportStore(str(tmp_path / "logs"))

    store.write_before("S1", "first run")
    store.write_before("S1", "second run")
    store.append_before("S1", "kickoff")
    store.write_after("S1", "final\n")

    assert store.before_path("S1") == os.path.join(str(tmp_path / "logs"), "S1_smart_before.txt")
    with open(store.before_path("S1")) as f:
        assert f.read() == "second run\nkickoff\n"
    with open(store.after_path("S1")) as f:
        assert f.read() == "final\n"
    assert store.badblocks_path("S1").endswith("S1_badblocks.log")
    assert store.written["S1"] == [store.before_path("S1"), store.after_path("S1")]
