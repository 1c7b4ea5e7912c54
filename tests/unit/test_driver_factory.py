import pytest

pytest.importorskip("selenium")

from lookout.core.driver_factory import _build_options


def test_no_profile_means_no_user_data_dir(tmp_path):
    options = _build_options(headless=True, profile_path=None, download_dir=str(tmp_path / "downloads"))

    assert not [arg for arg in options.arguments if arg.startswith("--user-data-dir")]
    assert "--headless=new" in options.arguments
    assert (tmp_path / "downloads").is_dir()


def test_profile_path_is_passed_through(tmp_path):
    profile = str(tmp_path / "profile")
    options = _build_options(headless=False, profile_path=profile, download_dir=str(tmp_path / "downloads"))

    assert f"--user-data-dir={profile}" in options.arguments
    assert options.experimental_options["prefs"]["plugins.always_open_pdf_externally"] is True
