import pytest

from servicemgr.fileutil import get_env, read_last_line, read_lines


def test_get_env_returns_value(monkeypatch):
    monkeypatch.setenv("SERVICEMGR_TEST_VAR", "data/logs")
    assert get_env("SERVICEMGR_TEST_VAR", "fallback") == "data/logs"


def test_get_env_returns_default_when_unset(monkeypatch):
    monkeypatch.delenv("SERVICEMGR_TEST_VAR", raising=False)
    assert get_env("SERVICEMGR_TEST_VAR", "0.0.0.0") == "0.0.0.0"


def test_get_env_empty_value_is_kept(monkeypatch):
    monkeypatch.setenv("SERVICEMGR_TEST_VAR", "")
    assert get_env("SERVICEMGR_TEST_VAR", "8080") == ""


def test_read_lines_trims_and_limits(tmp_path):
    path = tmp_path / "stdout"
    path.write_bytes(b"  one \r\ntwo\n three\nfour\n")
    assert read_lines(path, 3) == ["one", "two", "three"]


def test_read_lines_reads_whole_short_file(tmp_path):
    path = tmp_path / "stdout"
    path.write_text("a\nb\n")
    assert read_lines(path, 10000) == ["a", "b"]


def test_read_lines_empty_file(tmp_path):
    path = tmp_path / "stdout"
    path.write_text("")
    assert read_lines(path, 10) == []


def test_read_lines_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_lines(tmp_path / "missing", 10)


def test_read_lines_rejects_too_long_line(tmp_path):
    path = tmp_path / "stdout"
    path.write_bytes(b"x" * (64 * 1024 + 1) + b"\n")
    with pytest.raises(ValueError):
        read_lines(path, 10)


@pytest.mark.parametrize(
    "content, expected",
    [
        (b"a\nb\n", "b"),
        (b"a\nb", "b"),
        (b"abc", "abc"),
        (b"a\n\n", ""),
        (b"", ""),
        (b"\n", ""),
    ],
)
def test_read_last_line(tmp_path, content, expected):
    path = tmp_path / "stdout"
    path.write_bytes(content)
    assert read_last_line(path) == expected


def test_read_last_line_spanning_chunks(tmp_path):
    long_line = "y" * 10000
    path = tmp_path / "stdout"
    path.write_text("first\n" + long_line + "\n")
    assert read_last_line(path) == long_line


def test_read_last_line_matches_read_lines(tmp_path):
    path = tmp_path / "stdout"
    path.write_text("".join(f"line {n}\n" for n in range(50)))
    assert read_last_line(path) == read_lines(path, 1000)[-1]


def test_read_last_line_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_last_line(tmp_path / "missing")