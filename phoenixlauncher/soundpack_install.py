"""Downloading soundpacks and installing them into a game directory."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
import time
from collections.abc import Iterable
from pathlib import Path

import httpx

from phoenixlauncher.game import calculate_dir_size
from phoenixlauncher.soundpack import (
    AlreadyExists,
    DownloadFailed,
    ExtractionFailed,
    InstalledSoundpack,
    NoSoundpackTxt,
    ProgressCallback,
    RepoSoundpack,
    SoundpackPhase,
    SoundpackProgress,
    extract_archive,
    extract_filename_from_url,
    find_soundpack_dir,
    parse_soundpack_txt,
    soundpacks_dir,
)

log = logging.getLogger(__name__)

TEMP_EXTENSION = ".part"
PROGRESS_INTERVAL = 0.1
DEFAULT_ARCHIVE_NAME = "soundpack.zip"


def _report(progress: ProgressCallback | None, update: SoundpackProgress) -> None:
    if progress is not None:
        progress(update)


def _content_length(response: httpx.Response) -> int | None:
    value = response.headers.get("content-length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


def _size_or_zero(path: Path) -> int:
    try:
        return calculate_dir_size(path)
    except OSError:
        return 0


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    dest_path,
    progress: ProgressCallback | None = None,
    known_size: int | None = None,
) -> int:
    """Stream a URL to a file through a temporary file; returns the bytes written."""
    start = time.monotonic()
    dest_path = Path(dest_path)
    temp_path = dest_path.with_suffix(TEMP_EXTENSION)
    downloaded = 0

    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise DownloadFailed(f"HTTP {response.status_code} {response.reason_phrase}")

            total = _content_length(response)
            if total is None:
                total = known_size if known_size is not None else 0

            dest_path.parent.mkdir(parents=True, exist_ok=True)
            last_time = time.monotonic()
            last_downloaded = 0
            with open(temp_path, "wb") as handle:
                async for chunk in response.aiter_bytes():
                    handle.write(chunk)
                    downloaded += len(chunk)

                    now = time.monotonic()
                    elapsed = now - last_time
                    if elapsed >= PROGRESS_INTERVAL:
                        speed = int((downloaded - last_downloaded) / elapsed)
                        _report(
                            progress,
                            SoundpackProgress(
                                phase=SoundpackPhase.DOWNLOADING,
                                bytes_downloaded=downloaded,
                                total_bytes=total,
                                speed=speed,
                            ),
                        )
                        last_downloaded = downloaded
                        last_time = now
                handle.flush()
                os.fsync(handle.fileno())
    except httpx.HTTPError as exc:
        raise DownloadFailed(str(exc)) from exc

    os.replace(temp_path, dest_path)

    elapsed = max(time.monotonic() - start, 1e-9)
    megabytes = downloaded / 1_000_000
    log.info(
        "Download complete: %.1f MB in %.1fs (%.1f MB/s)",
        megabytes,
        elapsed,
        megabytes / elapsed,
    )
    return downloaded


def install_extracted_soundpack(extract_dir, game_dir) -> InstalledSoundpack:
    """Copy the soundpack found in an extraction directory into the game."""
    source = find_soundpack_dir(extract_dir)
    if source is None:
        raise NoSoundpackTxt()
    parsed = parse_soundpack_txt(source)
    if parsed is None:
        raise NoSoundpackTxt()
    name, view_name, enabled = parsed

    if not source.name:
        raise ExtractionFailed("Invalid path")
    dest = soundpacks_dir(game_dir) / source.name
    if dest.exists():
        raise AlreadyExists(source.name)

    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, dest)
    size = _size_or_zero(dest)

    log.info("Installed soundpack '%s' to %s", name, dest)
    return InstalledSoundpack(
        name=name, view_name=view_name, path=dest, enabled=enabled, size=size
    )


async def install_soundpack(
    client: httpx.AsyncClient,
    repo_soundpack: RepoSoundpack,
    game_dir,
    progress: ProgressCallback | None = None,
) -> InstalledSoundpack:
    """Download, extract and install a soundpack from the repository."""
    with tempfile.TemporaryDirectory() as temp:
        temp_dir = Path(temp)
        filename = extract_filename_from_url(repo_soundpack.url) or DEFAULT_ARCHIVE_NAME
        download_path = temp_dir / filename

        _report(
            progress,
            SoundpackProgress(
                phase=SoundpackPhase.DOWNLOADING,
                total_bytes=repo_soundpack.size or 0,
            ),
        )
        await download_file(
            client, repo_soundpack.url, download_path, progress, repo_soundpack.size
        )

        extract_dir = temp_dir / "extract"
        extract_dir.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(extract_archive, download_path, extract_dir, progress)

        _report(progress, SoundpackProgress(phase=SoundpackPhase.INSTALLING))
        installed = await asyncio.to_thread(install_extracted_soundpack, extract_dir, game_dir)

    _report(progress, SoundpackProgress(phase=SoundpackPhase.COMPLETE))
    return installed


def install_from_file(
    archive_path, game_dir, progress: ProgressCallback | None = None
) -> InstalledSoundpack:
    """Install a soundpack from a local archive file."""
    with tempfile.TemporaryDirectory() as temp:
        extract_dir = Path(temp) / "extract"
        extract_dir.mkdir(parents=True, exist_ok=True)
        extract_archive(archive_path, extract_dir, progress)

        _report(progress, SoundpackProgress(phase=SoundpackPhase.INSTALLING))
        installed = install_extracted_soundpack(extract_dir, game_dir)

    _report(progress, SoundpackProgress(phase=SoundpackPhase.COMPLETE))
    return installed


def is_soundpack_installed(installed: Iterable[InstalledSoundpack], name: str) -> bool:
    """Whether a soundpack with the given internal name is installed."""
    return any(s.name == name for s in installed)