import pytest

from attestclient.osinfo import (
    get_attestation_pcr_list,
    get_windows_version,
    parse_os_release_file,
    parse_version_string,
)


def test_unix_pcr_list():
    assert get_attestation_pcr_list(True) == [0, 1, 2, 3, 4, 5, 6, 7]


def test_windows_pcr_list():
    assert get_attestation_pcr_list(False) == [0, 1, 2, 3, 4, 5, 6, 7, 11, 12, 13, 14]


def test_default_pcr_list_is_one_of_the_platform_lists():
    result = get_attestation_pcr_list()
    assert result in (get_attestation_pcr_list(True), get_attestation_pcr_list(False))


def test_pcr_list_is_a_fresh_copy():
    first = get_attestation_pcr_list(True)
    first.append(99)
    assert 99 not in get_attestation_pcr_list(True)


def test_parse_os_release_file(tmp_path):
    release = tmp_path / "os-release"
    release.write_text('NAME="Ubuntu"\nVERSION_ID="20.04"\n# comment\n\nID=ubuntu\n')
    entries = parse_os_release_file(release, "=")
    assert entries == {"NAME": "Ubuntu", "VERSION_ID": "20.04", "ID": "ubuntu"}


def test_parse_os_release_splits_on_first_delimiter(tmp_path):
    release = tmp_path / "os-release"
    release.write_text("KEY=a=b\n")
    assert parse_os_release_file(release) == {"KEY": "a=b"}


def test_parse_os_release_any_delimiter_char(tmp_path):
    release = tmp_path / "os-release"
    release.write_text("A:1\nB=2\n")
    assert parse_os_release_file(release, ":=") == {"A": "1", "B": "2"}


def test_parse_os_release_later_entry_wins(tmp_path):
    release = tmp_path / "os-release"
    release.write_text("ID=first\nID=second")
    assert parse_os_release_file(release)["ID"] == "second"


def test_parse_os_release_empty_delim_rejected(tmp_path):
    release = tmp_path / "os-release"
    release.write_text("A=1\n")
    with pytest.raises(ValueError):
        parse_os_release_file(release, "")


def test_parse_os_release_missing_file(tmp_path):
    with pytest.raises(OSError):
        parse_os_release_file(tmp_path / "missing")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("20.04", (20, 4)),
        ("8", (8, 0)),
        ("1.2.3", (1, 2)),
        ("7.9abc", (7, 9)),
    ],
)
def test_parse_version_string(text, expected):
    assert parse_version_string(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "20.", "x.1", "99999999999"])
def test_parse_version_string_errors(text):
    with pytest.raises(ValueError):
        parse_version_string(text)


def test_get_windows_version():
    assert get_windows_version() == (10, 0, "NotApplicable")