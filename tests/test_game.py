import sys
from pathlib import Path

import pytest

from phoenixlauncher.db import Database, VersionInfo
from phoenixlauncher.game import (
    GameConfig,
    GameInfo,
    calculate_dir_size,
    calculate_sha256,
    detect_game_fast,
    detect_game_with_db,
    launch_game,
    read_version_txt,
    refine_version_with_hash,
)

HELLO_SHA = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


def test_calculate_sha256(tmp_path):
    target = tmp_path / "hello.txt"
    target.write_bytes(b"hello world")
    assert calculate_sha256(target) == HELLO_SHA


def test_calculate_dir_size(tmp_path):
    (tmp_path / "file1.txt").write_text("12345")
    (tmp_path / "file2.txt").write_text("1234567890")
    assert calculate_dir_size(tmp_path) == 15


def test_calculate_dir_size_recurses(tmp_path):
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    (nested / "x").write_bytes(b"abc")
    (tmp_path / "y").write_bytes(b"de")
    assert calculate_dir_size(tmp_path) == 5


def test_calculate_dir_size_of_missing_dir(tmp_path):
    assert calculate_dir_size(tmp_path / "missing") == 0


def test_detect_game_no_executable(tmp_path):
    assert detect_game_with_db(tmp_path, None) is None


def test_read_version_txt_valid(tmp_path):
    (tmp_path / "VERSION.txt").write_text(
        "Main branch: master\ncommit sha: abc1234567890def\ncommit date: 2024-01-15\n"
    )
    info = read_version_txt(tmp_path, GameConfig())
    assert info.version == "2024-01-15 (abc1234)"
    assert not info.stable
    assert info.released_on == "2024-01-15"


def test_read_version_txt_sha_only(tmp_path):
    (tmp_path / "VERSION.txt").write_text("Main branch: master\ncommit sha: def7890123456abc\n")
    info = read_version_txt(tmp_path, GameConfig())
    assert info.version == "def7890"
    assert not info.stable
    assert info.released_on is None


def test_read_version_txt_with_build_number(tmp_path):
    (tmp_path / "VERSION.txt").write_text(
        "build type: windows-with-graphics-x64\n"
        "build number: 2025-12-13-1446\n"
        "commit sha: 302bb35a02fa115e34c30f04041ee81972ee7933\n"
        "commit url: https://example.com/commit/302bb35\n"
    )
    info = read_version_txt(tmp_path, GameConfig())
    assert info.version == "2025-12-13 (302bb35)"
    assert not info.stable
    assert info.released_on == "2025-12-13-1446"


def test_read_version_txt_missing(tmp_path):
    assert read_version_txt(tmp_path, GameConfig()) is None


def test_read_version_txt_no_commit_sha(tmp_path):
    (tmp_path / "VERSION.txt").write_text("Some other content\nNo sha here\n")
    assert read_version_txt(tmp_path, GameConfig()) is None


def test_game_info_version_display():
    with_version = GameInfo(
        executable=Path("C:\\test\\game.exe"),
        version_info=VersionInfo(version="0.F-3", stable=True, released_on=None),
        saves_size=0,
    )
    assert with_version.version_display() == "0.F-3"
    assert with_version.is_stable()

    without_version = GameInfo(executable=Path("C:\\test\\game.exe"), version_info=None)
    assert without_version.version_display() == "Unknown"
    assert not without_version.is_stable()


def test_game_info_experimental():
    info = GameInfo(
        executable=Path("C:\\test\\game.exe"),
        version_info=VersionInfo(version="abc1234", stable=False, released_on="2024-01-15"),
        saves_size=1024,
    )
    assert info.version_display() == "abc1234"
    assert not info.is_stable()


def _make_game(directory, content=b"hello world"):
    exe = directory / GameConfig().executable_names[0]
    exe.write_bytes(content)
    return exe


def test_detect_game_fast_finds_executable_and_saves(tmp_path):
    exe = _make_game(tmp_path)
    saves = tmp_path / "save" / "world"
    saves.mkdir(parents=True)
    (saves / "data").write_bytes(b"1234")
    (tmp_path / "VERSION.txt").write_text("commit sha: abc1234567890def\n")

    info = detect_game_fast(tmp_path)
    assert info.executable == exe
    assert info.saves_size == 4
    assert info.version_display() == "abc1234"


def test_refine_uses_stable_hash(tmp_path):
    _make_game(tmp_path)
    with Database(tmp_path / "cache.db", {HELLO_SHA: "0.F-3"}) as db:
        info = detect_game_with_db(tmp_path, db)
        assert info.version_display() == "0.F-3"
        assert info.is_stable()
        assert db.count_cached_versions() == 1


def test_refine_keeps_original_when_unknown(tmp_path):
    _make_game(tmp_path)
    (tmp_path / "VERSION.txt").write_text("commit sha: def7890123456abc\n")
    with Database(tmp_path / "cache.db", {}) as db:
        info = detect_game_with_db(tmp_path, db)
    assert info.version_display() == "def7890"
    assert not info.is_stable()


def test_refine_prefers_cached_hash(tmp_path):
    exe = _make_game(tmp_path, b"different bytes")
    st = exe.stat()
    with Database(tmp_path / "cache.db", {HELLO_SHA: "0.G"}) as db:
        db.store_cached_hash(str(exe), st.st_size, int(st.st_mtime), HELLO_SHA)
        info = refine_version_with_hash(GameInfo(executable=exe), db)
    assert info.version_display() == "0.G"


def test_refine_without_db_keeps_version(tmp_path):
    exe = _make_game(tmp_path)
    original = VersionInfo(version="abc1234", stable=False)
    info = refine_version_with_hash(GameInfo(executable=exe, version_info=original, saves_size=7))
    assert info.version_info == original
    assert info.saves_size == 7


def test_refine_missing_executable_raises(tmp_path):
    with pytest.raises(OSError):
        refine_version_with_hash(GameInfo(executable=tmp_path / "gone.exe"))


def test_launch_game_runs_executable():
    proc = launch_game(Path(sys.executable), "-c pass")
    assert proc.wait(timeout=30) == 0
    assert proc.args[1:] == ["-c", "pass"]


def test_launch_game_without_parent_raises():
    with pytest.raises(ValueError):
        launch_game(Path("/"), "")