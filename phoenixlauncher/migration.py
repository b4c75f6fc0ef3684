"""Plan how custom content carries over from an archived game version to a new one.

Content is matched by identity (mod id, tileset or soundpack NAME, font file
name) so that official content shipped with the new version is never
overwritten by an older copy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from phoenixlauncher.content_scan import (
    ModInfo,
    SoundpackInfo,
    TilesetInfo,
    scan_fonts_directory,
    scan_mods_directory,
    scan_soundpack_files,
    scan_soundpacks_directory,
    scan_tilesets_directory,
)

log = logging.getLogger(__name__)

_CONFIG_SKIP_FILES = ("debug.log", "debug.log.prev")
_USER_DEFAULT_MODS = "user-default-mods.json"


def config_skip_files() -> tuple[str, ...]:
    """File names left out when configuration is restored."""
    return _CONFIG_SKIP_FILES


@dataclass
class SoundpackMergeInfo:
    """Custom files to copy into a soundpack present in both versions."""

    name: str
    old_path: Path
    new_path: Path
    custom_files: list[Path] = field(default_factory=list)


@dataclass
class MigrationPlan:
    """Custom content found in the old version that the new one lacks."""

    custom_mods: list[ModInfo] = field(default_factory=list)
    custom_user_mods: list[ModInfo] = field(default_factory=list)
    custom_tilesets: list[TilesetInfo] = field(default_factory=list)
    custom_soundpacks: list[SoundpackInfo] = field(default_factory=list)
    soundpack_merges: list[SoundpackMergeInfo] = field(default_factory=list)
    custom_fonts: list[Path] = field(default_factory=list)
    custom_data_fonts: list[Path] = field(default_factory=list)
    restore_user_default_mods: bool = False


def _missing_from(old: Mapping, new: Mapping) -> list:
    return [info for key, info in old.items() if key not in new]


def find_custom_mods(
    old_mods: Mapping[str, ModInfo], new_mods: Mapping[str, ModInfo]
) -> list[ModInfo]:
    """Mods whose id exists in the old version only."""
    return _missing_from(old_mods, new_mods)


def find_custom_tilesets(
    old_tilesets: Mapping[str, TilesetInfo], new_tilesets: Mapping[str, TilesetInfo]
) -> list[TilesetInfo]:
    """Tilesets whose name exists in the old version only."""
    return _missing_from(old_tilesets, new_tilesets)


def find_custom_soundpacks(
    old_soundpacks: Mapping[str, SoundpackInfo], new_soundpacks: Mapping[str, SoundpackInfo]
) -> list[SoundpackInfo]:
    """Soundpacks whose name exists in the old version only."""
    return _missing_from(old_soundpacks, new_soundpacks)


def find_custom_soundpack_files(old_soundpack, new_soundpack) -> list[Path]:
    """Relative paths of content files in the old soundpack but not the new one."""
    old_files = scan_soundpack_files(old_soundpack)
    new_files = scan_soundpack_files(new_soundpack)
    return sorted(old_files - new_files)


def find_soundpack_merges(
    old_soundpacks: Mapping[str, SoundpackInfo], new_soundpacks: Mapping[str, SoundpackInfo]
) -> list[SoundpackMergeInfo]:
    """Soundpacks in both versions whose old copy holds extra files."""
    merges = []
    for name, old_info in old_soundpacks.items():
        new_info = new_soundpacks.get(name)
        if new_info is None:
            continue
        custom_files = find_custom_soundpack_files(old_info.path, new_info.path)
        if custom_files:
            log.debug("Soundpack '%s' has %d custom files to merge", name, len(custom_files))
            merges.append(
                SoundpackMergeInfo(
                    name=name,
                    old_path=old_info.path,
                    new_path=new_info.path,
                    custom_files=custom_files,
                )
            )
    return merges


def find_custom_fonts(
    old_fonts: Iterable[str], new_fonts: Iterable[str], old_font_dir
) -> list[Path]:
    """Paths in the old font directory of fonts the new version lacks."""
    old_font_dir = Path(old_font_dir)
    return [old_font_dir / name for name in sorted(set(old_fonts) - set(new_fonts))]


def create_migration_plan(previous_version_dir, game_dir) -> MigrationPlan:
    """Compare an archived version with a new installation."""
    previous = Path(previous_version_dir)
    game = Path(game_dir)
    plan = MigrationPlan()

    old_mods_dir = previous / "data" / "mods"
    new_mods_dir = game / "data" / "mods"
    old_mods = scan_mods_directory(old_mods_dir)
    plan.custom_mods = find_custom_mods(old_mods, scan_mods_directory(new_mods_dir))
    log.info(
        "Found %d custom mods out of %d total mods", len(plan.custom_mods), len(old_mods)
    )

    plan.custom_user_mods = find_custom_mods(
        scan_mods_directory(previous / "mods"), scan_mods_directory(game / "mods")
    )
    if plan.custom_user_mods:
        log.info("Found %d custom user mods", len(plan.custom_user_mods))

    old_tilesets = scan_tilesets_directory(previous / "gfx")
    plan.custom_tilesets = find_custom_tilesets(
        old_tilesets, scan_tilesets_directory(game / "gfx")
    )
    log.info(
        "Found %d custom tilesets out of %d total tilesets",
        len(plan.custom_tilesets),
        len(old_tilesets),
    )

    old_soundpacks = scan_soundpacks_directory(previous / "data" / "sound")
    new_soundpacks = scan_soundpacks_directory(game / "data" / "sound")
    plan.custom_soundpacks = find_custom_soundpacks(old_soundpacks, new_soundpacks)
    plan.soundpack_merges = find_soundpack_merges(old_soundpacks, new_soundpacks)
    log.info(
        "Found %d custom soundpacks and %d soundpacks with custom files to merge",
        len(plan.custom_soundpacks),
        len(plan.soundpack_merges),
    )

    old_font_dir = previous / "font"
    plan.custom_fonts = find_custom_fonts(
        scan_fonts_directory(old_font_dir), scan_fonts_directory(game / "font"), old_font_dir
    )
    if plan.custom_fonts:
        log.info("Found %d custom fonts", len(plan.custom_fonts))

    old_data_font_dir = previous / "data" / "font"
    plan.custom_data_fonts = find_custom_fonts(
        scan_fonts_directory(old_data_font_dir),
        scan_fonts_directory(game / "data" / "font"),
        old_data_font_dir,
    )
    if plan.custom_data_fonts:
        log.info("Found %d custom data fonts", len(plan.custom_data_fonts))

    plan.restore_user_default_mods = (
        (old_mods_dir / _USER_DEFAULT_MODS).exists()
        and not (new_mods_dir / _USER_DEFAULT_MODS).exists()
    )
    if plan.restore_user_default_mods:
        log.info("Will restore %s", _USER_DEFAULT_MODS)

    return plan