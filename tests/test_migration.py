from pathlib import Path

from phoenixlauncher.content_scan import ModInfo, SoundpackInfo, TilesetInfo
from phoenixlauncher.migration import (
    MigrationPlan,
    config_skip_files,
    create_migration_plan,
    find_custom_fonts,
    find_custom_mods,
    find_custom_soundpack_files,
    find_custom_soundpacks,
    find_custom_tilesets,
    find_soundpack_merges,
)


def _write(path: Path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)


def test_find_custom_mods_set_difference():
    old_mods = {
        "official_mod": ModInfo("official_mod", Path("/old/official_mod")),
        "custom_mod": ModInfo("custom_mod", Path("/old/custom_mod")),
    }
    new_mods = {"official_mod": ModInfo("official_mod", Path("/new/official_mod"))}

    custom = find_custom_mods(old_mods, new_mods)

    assert len(custom) == 1
    assert custom[0].id == "custom_mod"


def test_find_custom_tilesets_set_difference():
    old_tilesets = {
        "UltimateCataclysm": TilesetInfo("UltimateCataclysm", Path("/old/gfx/UltiCa")),
        "MyCustomTileset": TilesetInfo("MyCustomTileset", Path("/old/gfx/MyCustom")),
    }
    new_tilesets = {
        "UltimateCataclysm": TilesetInfo("UltimateCataclysm", Path("/new/gfx/UltiCa")),
    }

    custom = find_custom_tilesets(old_tilesets, new_tilesets)

    assert len(custom) == 1
    assert custom[0].name == "MyCustomTileset"


def test_find_custom_soundpacks_set_difference():
    old = {
        "A": SoundpackInfo("A", Path("/old/A")),
        "B": SoundpackInfo("B", Path("/old/B")),
    }
    new = {"B": SoundpackInfo("B", Path("/new/B"))}

    custom = find_custom_soundpacks(old, new)

    assert [s.name for s in custom] == ["A"]
    assert custom[0].path == Path("/old/A")


def test_find_custom_fonts(tmp_path):
    old_font_dir = tmp_path / "old_font"
    old_font_dir.mkdir()

    custom = find_custom_fonts({"official.ttf", "custom.ttf"}, {"official.ttf"}, old_font_dir)

    assert len(custom) == 1
    assert custom[0].name == "custom.ttf"
    assert custom[0].parent == old_font_dir


def test_config_skip_files_includes_debug_logs():
    skip_files = config_skip_files()
    assert "debug.log" in skip_files
    assert "debug.log.prev" in skip_files


def test_create_migration_plan(tmp_path):
    previous_dir = tmp_path / ".phoenix_archive"
    game_dir = tmp_path / "game"

    _write(
        previous_dir / "data/mods/custom_mod/modinfo.json",
        '{"type": "MOD_INFO", "id": "my_custom_mod"}',
    )
    _write(
        previous_dir / "data/mods/official_mod/modinfo.json",
        '{"type": "MOD_INFO", "id": "official_mod"}',
    )
    _write(
        game_dir / "data/mods/official_mod/modinfo.json",
        '{"type": "MOD_INFO", "id": "official_mod"}',
    )

    plan = create_migration_plan(previous_dir, game_dir)

    assert len(plan.custom_mods) == 1
    assert plan.custom_mods[0].id == "my_custom_mod"


def test_find_custom_soundpack_files(tmp_path):
    old_dir = tmp_path / "old_soundpack"
    _write(old_dir / "soundset.json", "{}")
    _write(old_dir / "music" / "official.ogg", b"audio")
    _write(old_dir / "music" / "custom_music.ogg", b"custom")

    new_dir = tmp_path / "new_soundpack"
    _write(new_dir / "soundset.json", "{}")
    _write(new_dir / "music" / "official.ogg", b"audio")

    custom = find_custom_soundpack_files(old_dir, new_dir)

    assert len(custom) == 1
    assert Path("music") / "custom_music.ogg" in custom


def test_create_migration_plan_with_soundpack_merge(tmp_path):
    previous_dir = tmp_path / ".phoenix_archive"
    game_dir = tmp_path / "game"

    old_soundpack = previous_dir / "data/sound/CC-Sounds"
    _write(old_soundpack / "soundpack.txt", "NAME CC-Sounds\n")
    _write(old_soundpack / "soundset.json", "{}")
    _write(old_soundpack / "music" / "custom.ogg", b"custom")

    new_soundpack = game_dir / "data/sound/CC-Sounds"
    _write(new_soundpack / "soundpack.txt", "NAME CC-Sounds\n")
    _write(new_soundpack / "soundset.json", "{}")

    plan = create_migration_plan(previous_dir, game_dir)

    assert plan.custom_soundpacks == []
    assert len(plan.soundpack_merges) == 1
    assert plan.soundpack_merges[0].name == "CC-Sounds"
    assert plan.soundpack_merges[0].custom_files == [Path("music") / "custom.ogg"]


def test_find_soundpack_merges_skips_identical(tmp_path):
    old_dir = tmp_path / "old"
    new_dir = tmp_path / "new"
    _write(old_dir / "a.ogg", b"x")
    _write(new_dir / "a.ogg", b"x")

    merges = find_soundpack_merges(
        {"S": SoundpackInfo("S", old_dir)}, {"S": SoundpackInfo("S", new_dir)}
    )

    assert merges == []


def test_create_migration_plan_fonts_and_user_default_mods(tmp_path):
    previous_dir = tmp_path / "prev"
    game_dir = tmp_path / "game"
    _write(previous_dir / "font" / "mine.ttf", b"f")
    _write(previous_dir / "font" / "shared.ttf", b"f")
    _write(game_dir / "font" / "shared.ttf", b"f")
    _write(previous_dir / "data" / "font" / "extra.ttf", b"f")
    _write(previous_dir / "data" / "mods" / "user-default-mods.json", "[]")
    _write(
        previous_dir / "mods" / "um" / "modinfo.json",
        '{"type": "MOD_INFO", "id": "user_mod"}',
    )
    _write(previous_dir / "gfx" / "ts" / "tileset.txt", "NAME MyTiles\n")

    plan = create_migration_plan(previous_dir, game_dir)

    assert plan.custom_fonts == [previous_dir / "font" / "mine.ttf"]
    assert plan.custom_data_fonts == [previous_dir / "data" / "font" / "extra.ttf"]
    assert plan.restore_user_default_mods is True
    assert [m.id for m in plan.custom_user_mods] == ["user_mod"]
    assert [t.name for t in plan.custom_tilesets] == ["MyTiles"]


def test_user_default_mods_not_restored_when_present_in_new(tmp_path):
    previous_dir = tmp_path / "prev"
    game_dir = tmp_path / "game"
    _write(previous_dir / "data" / "mods" / "user-default-mods.json", "[]")
    _write(game_dir / "data" / "mods" / "user-default-mods.json", "[]")

    plan = create_migration_plan(previous_dir, game_dir)

    assert plan.restore_user_default_mods is False


def test_create_migration_plan_empty_dirs(tmp_path):
    plan = create_migration_plan(tmp_path / "missing_prev", tmp_path / "missing_game")
    assert plan == MigrationPlan()