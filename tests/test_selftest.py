from refield import selftest
from refield.geometry.viewport import Viewport
from refield.selftest import CheckResult, SelfTestReport, round_trip_error, run_self_test


def test_self_test_passes():
    report = run_self_test()

    assert report.error is None
    assert report.passed, "\n".join(report.lines())
    names = [check.name for check in report.checks]
    assert "extracted ≥2 widgets" in names
    assert "widgets removed on all pages" in names
    assert sum(name.startswith("viewport↔pdf") for name in names) == 4


def test_round_trip_error_is_negligible():
    viewport = Viewport((0, 0, 612, 792), 1.5, 180)
    assert round_trip_error(viewport, 100, 150, 120, 30) < 1e-6


def test_check_result_rendering():
    assert str(CheckResult("ok", True)) == "✔ ok"
    assert str(CheckResult("bad", False, "3 left")) == "✘ bad (3 left)"


def test_report_fails_on_any_failed_check():
    report = SelfTestReport()
    report.record("first", True)
    assert report.passed
    report.record("second", False)
    assert not report.passed


def test_aborted_run_is_reported(monkeypatch):
    def broken_fixture():
        raise RuntimeError("fixture exploded")

    monkeypatch.setattr(selftest, "build_form_fixture", broken_fixture)

    report = run_self_test()

    assert not report.passed
    assert report.error == "fixture exploded"
    assert report.lines()[-1] == "✘ Test run error: fixture exploded"
