"""Argument builders for the external tools.

Each function returns the argument list (without the executable) for one
tool invocation. Nothing here touches the filesystem.
"""

from __future__ import annotations

from pathlib import Path

from .models import AudioFormat, BlankMode, MediaType

FFMPEG_COMMON = ["-hide_banner", "-nostdin", "-y"]
FFMPEG_PROGRESS = ["-progress", "pipe:1", "-nostats"]
ISO_BLOCK_SIZE = 2048


def cdrdao_write(
    device: str,
    toc_file: str,
    speed: int | None = None,
    simulate: bool = False,
    eject: bool = False,
    overburn: bool = False,
    swap: bool = False,
    raw_mode: bool = False,
) -> list[str]:
    args = ["simulate" if simulate else "write", "--device", device]
    if speed:
        args += ["--speed", str(speed)]
    if overburn:
        args.append("--overburn")
    if eject:
        args.append("--eject")
    if swap:
        args.append("--swap")
    if raw_mode:
        args += ["--driver", "generic-mmc-raw"]
    args.append(toc_file)
    return args


def cdrdao_blank(
    device: str,
    mode: BlankMode = BlankMode.FULL,
    speed: int | None = None,
    eject: bool = False,
) -> list[str]:
    args = ["blank", "--device", device, "--blank-mode", mode.value]
    if speed:
        args += ["--speed", str(speed)]
    if eject:
        args.append("--eject")
    return args


def cdrdao_read_cd(device: str, toc_file: str, data_file: str) -> list[str]:
    return ["read-cd", "--device", device, "--datafile", data_file, toc_file]


def cdrdao_unlock(device: str) -> list[str]:
    return ["unlock", "--device", device]


def growisofs_burn(
    device: str,
    image: Path,
    speed: int | None = None,
    simulate: bool = False,
    dvd_compat: bool = True,
    overburn: bool = False,
) -> list[str]:
    args = ["-Z", f"{device}={image}"]
    if speed:
        args.append(f"-speed={speed}")
    if dvd_compat:
        args.append("-dvd-compat")
    if overburn:
        args.append("-overburn")
    if simulate:
        args.append("-dry-run")
    return args


def xorriso_burn(
    device: str,
    image: Path,
    speed: int | None = None,
    simulate: bool = False,
    eject: bool = False,
) -> list[str]:
    args = ["-as", "cdrecord", "-v", f"dev={device}"]
    if speed:
        args.append(f"speed={speed}")
    if simulate:
        args.append("-dummy")
    if eject:
        args.append("-eject")
    args.append(str(image))
    return args


def dvd_rw_format(device: str, media: MediaType, mode: BlankMode) -> list[str]:
    """DVD-RW is blanked; DVD+RW, DVD-RAM and BD-RE are (re)formatted."""
    if media == MediaType.DVD_MINUS_RW:
        flag = "-blank=full" if mode == BlankMode.FULL else "-blank"
    else:
        flag = "-force=full" if mode == BlankMode.FULL else "-force"
    return [flag, device]


def mkisofs(
    output: Path,
    path_list: Path,
    volume_label: str,
    joliet: bool = True,
    rock_ridge: bool = True,
) -> list[str]:
    args = ["-iso-level", "3"]
    if joliet:
        args += ["-J", "-joliet-long"]
    if rock_ridge:
        args.append("-r")
    args += [
        "-V", volume_label,
        "-o", str(output),
        "-graft-points",
        "-path-list", str(path_list),
    ]
    return args


def dd_read(device: str, output: Path) -> list[str]:
    return [f"if={device}", f"of={output}", f"bs={ISO_BLOCK_SIZE}", "status=progress"]


def ffmpeg_to_cd_wav(source: Path, output: Path) -> list[str]:
    """Convert any audio file to 44.1 kHz 16-bit stereo WAV."""
    return [
        *FFMPEG_COMMON,
        "-i", str(source),
        "-vn",
        "-ar", "44100",
        "-ac", "2",
        "-sample_fmt", "s16",
        "-f", "wav",
        *FFMPEG_PROGRESS,
        str(output),
    ]


def _codec_args(fmt: AudioFormat, mp3_bitrate: int) -> list[str]:
    if fmt == AudioFormat.MP3:
        return ["-c:a", "libmp3lame", "-b:a", f"{mp3_bitrate}k"]
    if fmt == AudioFormat.FLAC:
        return ["-c:a", "flac"]
    if fmt == AudioFormat.AAC:
        return ["-c:a", "aac", "-b:a", "256k"]
    return ["-c:a", "pcm_s16le"]


def ffmpeg_convert(
    source: Path, output: Path, fmt: AudioFormat, mp3_bitrate: int = 320
) -> list[str]:
    """Convert an audio file to ``fmt``; WAV output is CD-quality."""
    if fmt == AudioFormat.WAV:
        return ffmpeg_to_cd_wav(source, output)
    return [
        *FFMPEG_COMMON,
        "-i", str(source),
        "-vn",
        *_codec_args(fmt, mp3_bitrate),
        *FFMPEG_PROGRESS,
        str(output),
    ]


def ffmpeg_extract_track(
    data_file: Path,
    output: Path,
    start_seconds: float,
    length_seconds: float,
    fmt: AudioFormat,
    track_number: int,
    sample_format: str = "s16le",
    mp3_bitrate: int = 320,
) -> list[str]:
    """Cut one track out of raw CD audio and encode it."""
    return [
        *FFMPEG_COMMON,
        "-f", sample_format,
        "-ar", "44100",
        "-ac", "2",
        "-ss", f"{start_seconds:.6f}",
        "-t", f"{length_seconds:.6f}",
        "-i", str(data_file),
        *_codec_args(fmt, mp3_bitrate),
        "-metadata", f"track={track_number}",
        *FFMPEG_PROGRESS,
        str(output),
    ]
