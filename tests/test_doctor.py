from unittest.mock import patch

from apicompat.config import CheckerConfig
from apicompat.doctor import doctor_report


def _by_name(report):
    return {i.name: i for i in report.items}


def test_doctor_all_tools_present(tmp_path):
    with patch("apicompat.doctor.which", side_effect=lambda c: f"/usr/bin/{c}"), patch(
        "apicompat.doctor.run_cmd"
    ) as mock_run:
        mock_run.return_value.returncode = 0
        mock_run.return_value.output = "5.036000"
        rep = doctor_report(tmp_path, tmp_path / "cache")
    items = _by_name(rep)
    assert rep.ok
    assert items["cache"].status == "OK"
    assert items["perl version"].details == "5.036000"
    assert items["japi-compliance-checker"].status == "INFO"


def test_doctor_missing_cache_dir(tmp_path):
    with patch("apicompat.doctor.which", side_effect=lambda c: f"/usr/bin/{c}"), patch("apicompat.doctor.run_cmd"):
        rep = doctor_report(tmp_path, None)
    assert not rep.ok
    assert _by_name(rep)["cache"].status == "FAIL"


def test_doctor_missing_perl(tmp_path):
    with patch("apicompat.doctor.which", side_effect=lambda c: None if c == "perl" else f"/usr/bin/{c}"):
        rep = doctor_report(tmp_path, tmp_path / "cache")
    assert not rep.ok
    assert _by_name(rep)["perl"].status == "FAIL"


def test_doctor_sudo_optional(tmp_path):
    with patch("apicompat.doctor.which", side_effect=lambda c: None if c == "sudo" else f"/usr/bin/{c}"), patch(
        "apicompat.doctor.run_cmd"
    ):
        rep = doctor_report(tmp_path, tmp_path / "cache")
        assert _by_name(rep)["sudo"].status == "WARN"
        assert rep.ok
        rep = doctor_report(tmp_path, tmp_path / "cache", CheckerConfig(use_sudo=False))
        assert "sudo" not in _by_name(rep)
