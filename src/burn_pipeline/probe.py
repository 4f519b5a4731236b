"""FFprobe subprocess wrappers for audio file inspection."""

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path

FFPROBE = "ffprobe"


def _run_ffprobe(args: list[str], ffprobe: str = FFPROBE) -> subprocess.CompletedProcess:
    """Run ffprobe with common flags."""
    return subprocess.run(
        [ffprobe, "-v", "error"] + args,
        capture_output=True,
        text=True,
    )


def get_duration(file: Path, ffprobe: str = FFPROBE) -> float:
    """Get duration in seconds."""
    result = _run_ffprobe([
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(file),
    ], ffprobe)
    output = result.stdout.strip()
    if not output:
        raise ValueError(f"ffprobe returned empty duration for {file}")
    return float(output)


@dataclass(frozen=True)
class AudioFormatInfo:
    """Stream-level format of the first audio stream."""

    codec: str
    sample_rate: int
    channels: int
    bits_per_sample: int

    @property
    def is_cd_quality(self) -> bool:
        """True for 16-bit 44.1 kHz stereo PCM, which cdrdao burns as-is."""
        return (
            self.codec == "pcm_s16le"
            and self.sample_rate == 44100
            and self.channels == 2
            and self.bits_per_sample == 16
        )


def get_audio_format(file: Path, ffprobe: str = FFPROBE) -> AudioFormatInfo | None:
    """Read codec, sample rate, channels and bit depth.

    Returns None when ffprobe fails or the file has no audio stream.
    """
    result = _run_ffprobe([
        "-select_streams", "a:0",
        "-show_entries", "stream=codec_name,sample_rate,channels,bits_per_sample",
        "-of", "json",
        str(file),
    ], ffprobe)
    if result.returncode != 0:
        return None
    try:
        streams = json.loads(result.stdout).get("streams", [])
    except json.JSONDecodeError:
        return None
    if not streams:
        return None
    stream = streams[0]
    try:
        return AudioFormatInfo(
            codec=stream.get("codec_name", ""),
            sample_rate=int(stream.get("sample_rate", 0)),
            channels=int(stream.get("channels", 0)),
            bits_per_sample=int(stream.get("bits_per_sample", 0)),
        )
    except (TypeError, ValueError):
        return None


def duration_to_timestamp(seconds: float) -> str:
    """Convert seconds to MM:SS, or H:MM:SS past an hour."""
    total = int(seconds)
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"
