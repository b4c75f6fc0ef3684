# phoenixlauncher

A library holding the core of a game launcher for Cataclysm: Dark Days Ahead.
It finds game installations, works out which version is installed, caches
what it learns in SQLite, fetches release lists from GitHub, manages
soundpacks and plans which custom content to carry over when the game is
updated.

## Installation

```
pip install phoenixlauncher
```

To run the tests:

```
pip install "phoenixlauncher[test]"
pytest
```

## Modules

- `phoenixlauncher.game`
  - `detect_game_fast(directory, config)` looks for the game executable named
    in a `GameConfig` and reads `VERSION.txt` for the version. It also sums the
    size of the save directory. It returns a `GameInfo` or `None`.
  - `refine_version_with_hash(info, db)` hashes the executable. The hash is
    cached in the database by path, size and modification time. If the hash is
    a known stable release, that version replaces the one from `VERSION.txt`.
  - `detect_game_with_db(directory, db, config)` does both steps.
  - `read_version_txt`, `calculate_sha256` and `calculate_dir_size` are the
    helpers the above use.
  - `launch_game(executable, params)` starts the executable in its own
    directory with whitespace-separated parameters and returns the
    `subprocess.Popen`.
- `phoenixlauncher.db`: `Database` is a SQLite cache.
  - It answers version lookups by SHA-256 through `get_version`, checking a
    mapping of known stable hashes first.
  - It caches executable hashes with `get_cached_hash`, `store_cached_hash`,
    `count_cached_versions` and `clear_hash_cache`.
  - It caches release changelogs with `get_changelog` and `store_changelog`.
  - `Database.open(stable_versions)` uses a file in the user data directory.
    `Database(path, stable_versions)` opens any path, including `":memory:"`.
    It is a context manager.
- `phoenixlauncher.github`: `GitHubClient` is an asynchronous client built on
  `httpx`.
  - `get_experimental_releases` fetches the latest releases and raises
    `GitHubError` on failure.
  - `get_stable_releases` combines the `EmbeddedRelease` entries you supply
    with a lookup of `0.<letter>-RELEASE` tags for the letters to check, and
    sorts the result newest letter first.
  - `get_release_by_tag` and `get_releases_by_tags` fetch individual tags.
  - `RateLimitInfo` carries the rate-limit headers of the last response.
  - `GitHubClient.find_windows_asset` picks the Windows x64 graphical ZIP,
    preferring one that includes sounds.
- `phoenixlauncher.content_scan`: identifies content by name or id.
  - `parse_mod_ident`, `parse_tileset_info` and `parse_soundpack_info` read
    mod ids and tileset or soundpack names.
  - The `scan_*_directory` functions map a directory's contents by id or
    name.
  - `scan_soundpack_files` lists the audio and JSON files of a soundpack.
- `phoenixlauncher.migration`: `create_migration_plan(previous_version_dir,
  game_dir)` returns a `MigrationPlan`. The plan lists:
  - custom mods, user mods, tilesets, soundpacks and fonts;
  - soundpacks with extra files to merge (`SoundpackMergeInfo`);
  - whether `user-default-mods.json` should be restored.
- `phoenixlauncher.soundpack`
  - `list_installed_soundpacks`, `set_soundpack_enabled` and
    `delete_soundpack` manage installed soundpacks. Enabling or disabling
    renames `soundpack.txt` to or from `soundpack.txt.disabled`.
  - `extract_archive` unpacks ZIP archives and reports `SoundpackProgress`
    through an optional callback.
  - `load_repository(path)` reads a JSON list of `RepoSoundpack` entries.
  - Failures raise subclasses of `SoundpackError`.
- `phoenixlauncher.soundpack_install`
  - `download_file` streams a download through a `.part` file.
  - `install_soundpack` downloads, extracts and installs a repository
    soundpack.
  - `install_from_file` installs from a local archive.
  - `install_extracted_soundpack` copies an already extracted soundpack into
    the game.
  - `is_soundpack_installed` checks a list by name.

## Example

```python
from pathlib import Path

from phoenixlauncher.db import Database
from phoenixlauncher.game import detect_game_with_db
from phoenixlauncher.migration import create_migration_plan

with Database.open({}) as db:
    info = detect_game_with_db(Path("C:/Games/CDDA"), db)
    if info is not None:
        print(info.version_display(), info.is_stable())

plan = create_migration_plan(Path("C:/Games/CDDA/.phoenix_archive"), Path("C:/Games/CDDA"))
print([mod.id for mod in plan.custom_mods])
```

## What it does not do

This is a library only. It has:

- no graphical interface and no command-line program;
- no state objects that run these operations in the background and poll them.

It does not create, restore or rotate save backups. It does not download and
install game updates either. `create_migration_plan` only says what should be
carried over; it copies nothing.

It ships no data of its own. The caller supplies:

- the known stable-release hashes (to `Database`);
- the embedded stable releases (to `GitHubClient`);
- the soundpack repository (to `load_repository`).