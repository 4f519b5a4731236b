"""CLI entry point for the disc pipeline."""

import os
from pathlib import Path

import click
from loguru import logger

from .config import PipelineConfig
from .models import (
    AudioFormat,
    BlankMode,
    CDType,
    MediaKind,
    MediaType,
    PhaseKind,
)
from .orchestrator import PipelineOrchestrator
from .params import (
    AudioTrackSpec,
    BurnAudioParams,
    BurnDataParams,
    BurnImageParams,
    CDText,
    ConvertParams,
    CopyParams,
    EraseParams,
    ExtractParams,
    ReadImageParams,
)
from .probe import get_duration
from .state import ProgressSnapshot

log = logger.bind(stage="cli")


def _find_config_file() -> Path | None:
    """Look for .env next to the package or in cwd."""
    pkg_dir = Path(__file__).resolve().parent
    for candidate in [
        pkg_dir.parent.parent / ".env",  # dev: src/../.env
        Path.cwd() / ".env",
    ]:
        if candidate.is_file():
            return candidate
    return None


def _load_env_file(env_file: Path) -> None:
    """Load a shell-style .env file into os.environ (without overriding)."""
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        if (value.startswith('"') and value.endswith('"')) or (
            value.startswith("'") and value.endswith("'")
        ):
            value = value[1:-1]
        if "${" in value:
            continue
        # Don't override existing env vars (CLI > env > file)
        if key not in os.environ:
            os.environ[key] = value


def _status_line(snap: ProgressSnapshot) -> str:
    parts = [f"[{snap.stage_index}/{snap.stage_count}] {snap.phase}"]
    if snap.step_count:
        parts.append(f"({snap.step}/{snap.step_count})")
    if snap.total > 0:
        parts.append(f"{snap.percent:5.1f}%")
        if snap.unit == "MB":
            parts.append(f"{snap.current:.0f}/{snap.total:.0f} MB")
    if snap.write_speed:
        parts.append(f"@{snap.write_speed}")
    if snap.buffer_fifo or snap.buffer_drive:
        parts.append(f"buf {snap.buffer_fifo}%/{snap.buffer_drive}%")
    if snap.eta_seconds is not None:
        eta = int(snap.eta_seconds)
        parts.append(f"eta {eta // 60}:{eta % 60:02d}")
    if snap.is_simulation:
        parts.append("[simulation]")
    return " ".join(parts)


def _execute(config: PipelineConfig, params) -> None:
    """Run an operation with a live status line; Ctrl-C cancels it."""
    orchestrator = PipelineOrchestrator(config)
    final = None
    try:
        for snap in orchestrator.stream(params):
            final = snap
            click.echo(f"\r{_status_line(snap):<78}", nl=False)
    except KeyboardInterrupt:
        # Closing the stream cancels the run and waits for its cleanup
        click.echo("\nCancelling...", err=True)
        final = orchestrator.snapshot()
    click.echo("")

    if final is None:
        raise click.ClickException("Run produced no result")
    for warning in final.warnings:
        click.echo(f"Warning: {warning}", err=True)
    if final.phase.kind != PhaseKind.COMPLETED:
        message = final.phase.reason or "Failed"
        if final.error is not None and final.error.detail:
            message = f"{message}\n  {final.error.detail}"
        raise click.ClickException(message)
    click.echo(f"Done ({final.operation}).")


def _audio_tracks(
    config: PipelineConfig, files: tuple[str, ...]
) -> list[AudioTrackSpec]:
    """Build track specs with durations read up front."""
    tracks = []
    for f in files:
        source = Path(f).resolve()
        try:
            duration = get_duration(source, config.ffprobe_path)
        except ValueError:
            raise click.ClickException(f"Unreadable audio file: {source.name}")
        tracks.append(
            AudioTrackSpec(source=source, title=source.stem, duration_seconds=duration)
        )
    return tracks


device_option = click.option(
    "-d", "--device", required=True, help="Drive device, e.g. /dev/sr0."
)
speed_option = click.option("--speed", type=int, default=None, help="Write speed.")
simulate_option = click.option(
    "--simulate", is_flag=True, help="Simulate the write (laser off)."
)
eject_option = click.option(
    "--eject/--no-eject", default=True, help="Eject the disc when done."
)
overburn_option = click.option(
    "--overburn", is_flag=True, help="Allow writing past the nominal capacity."
)
media_option = click.option(
    "--media",
    type=click.Choice([m.value for m in MediaKind]),
    default=MediaKind.CD.value,
    help="Disc family.",
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    default=None,
    help="Path to .env file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_file: str | None) -> None:
    """Burn, read, copy, and erase optical discs, and convert audio files."""
    env_file = Path(config_file) if config_file else _find_config_file()
    if env_file and env_file.is_file():
        _load_env_file(env_file)
        log.debug(f"Loaded env from {env_file}")

    config_kwargs: dict[str, bool | str] = {"verbose": verbose}
    if verbose:
        config_kwargs["log_level"] = "DEBUG"
    config = PipelineConfig(**config_kwargs)  # type: ignore[arg-type]
    config.setup_logging()
    ctx.obj = config


@main.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@device_option
@speed_option
@simulate_option
@eject_option
@overburn_option
@click.option("--raw", is_flag=True, help="Use the generic-mmc-raw driver.")
@click.option("--swap", is_flag=True, help="Swap audio byte order.")
@click.pass_obj
def burn(
    config: PipelineConfig,
    image: str,
    device: str,
    speed: int | None,
    simulate: bool,
    eject: bool,
    overburn: bool,
    raw: bool,
    swap: bool,
) -> None:
    """Burn a CUE/BIN, TOC, ISO or IMG image."""
    _execute(
        config,
        BurnImageParams(
            image=Path(image).resolve(),
            device=device,
            speed=speed,
            simulate=simulate,
            eject=eject,
            overburn=overburn,
            raw_mode=raw,
            swap_audio=swap,
        ),
    )


@main.command("burn-audio")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@device_option
@speed_option
@simulate_option
@eject_option
@overburn_option
@click.option(
    "--cd-type",
    type=click.Choice([t.value for t in CDType]),
    default=CDType.CD_80.value,
    help="Disc length in minutes.",
)
@click.option("--title", default="", help="CD-TEXT album title.")
@click.option("--performer", default="", help="CD-TEXT album performer.")
@click.pass_obj
def burn_audio(
    config: PipelineConfig,
    files: tuple[str, ...],
    device: str,
    speed: int | None,
    simulate: bool,
    eject: bool,
    overburn: bool,
    cd_type: str,
    title: str,
    performer: str,
) -> None:
    """Burn audio files as an audio CD (one track per file)."""
    tracks = _audio_tracks(config, files)
    _execute(
        config,
        BurnAudioParams(
            tracks=tracks,
            device=device,
            cd_type=CDType(cd_type),
            cd_text=CDText(title=title, performer=performer),
            speed=speed,
            simulate=simulate,
            eject=eject,
            overburn=overburn,
        ),
    )


@main.command("burn-data")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True))
@device_option
@speed_option
@simulate_option
@eject_option
@overburn_option
@media_option
@click.option("-V", "--label", default="DATA_DISC", help="Volume label.")
@click.pass_obj
def burn_data(
    config: PipelineConfig,
    files: tuple[str, ...],
    device: str,
    speed: int | None,
    simulate: bool,
    eject: bool,
    overburn: bool,
    media: str,
    label: str,
) -> None:
    """Master files and directories into an ISO and burn it."""
    _execute(
        config,
        BurnDataParams(
            files=[Path(f).resolve() for f in files],
            device=device,
            media=MediaKind(media),
            volume_label=label,
            speed=speed,
            simulate=simulate,
            eject=eject,
            overburn=overburn,
        ),
    )


@main.command()
@click.option("-s", "--source", "source_device", required=True, help="Source drive.")
@device_option
@speed_option
@simulate_option
@eject_option
@media_option
@click.pass_obj
def copy(
    config: PipelineConfig,
    source_device: str,
    device: str,
    speed: int | None,
    simulate: bool,
    eject: bool,
    media: str,
) -> None:
    """Copy a disc: read it to a temp image, then burn it."""
    _execute(
        config,
        CopyParams(
            source_device=source_device,
            device=device,
            media=MediaKind(media),
            speed=speed,
            simulate=simulate,
            eject=eject,
        ),
    )


@main.command()
@click.argument("destination", type=click.Path(dir_okay=False))
@device_option
@media_option
@click.pass_obj
def read(config: PipelineConfig, destination: str, device: str, media: str) -> None:
    """Read a disc into an image (TOC+BIN for CD, ISO for DVD/BD)."""
    _execute(
        config,
        ReadImageParams(
            device=device,
            destination=Path(destination).resolve(),
            media=MediaKind(media),
        ),
    )


@main.command()
@click.argument("output_dir", type=click.Path(file_okay=False, exists=True))
@device_option
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in AudioFormat]),
    default=AudioFormat.FLAC.value,
    help="Output audio format.",
)
@click.option(
    "-t", "--track", "tracks", type=int, multiple=True, help="Track number (repeatable)."
)
@click.option("--bitrate", type=int, default=320, help="MP3 bitrate in kbps.")
@click.option("--prefix", default="Track", help="File name prefix for extracted tracks.")
@click.pass_obj
def extract(
    config: PipelineConfig,
    output_dir: str,
    device: str,
    fmt: str,
    tracks: tuple[int, ...],
    bitrate: int,
    prefix: str,
) -> None:
    """Extract audio CD tracks to files."""
    _execute(
        config,
        ExtractParams(
            device=device,
            output_dir=Path(output_dir).resolve(),
            tracks=list(tracks) or None,
            format=AudioFormat(fmt),
            mp3_bitrate=bitrate,
            name_prefix=prefix,
        ),
    )


@main.command()
@device_option
@click.option(
    "-m",
    "--media-type",
    type=click.Choice([m.value for m in MediaType if m.is_rewritable]),
    default=MediaType.CD_RW.value,
    help="Rewritable media type.",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in BlankMode]),
    default=BlankMode.MINIMAL.value,
    help="Blanking mode.",
)
@eject_option
@click.pass_obj
def erase(
    config: PipelineConfig, device: str, media_type: str, mode: str, eject: bool
) -> None:
    """Erase rewritable media."""
    _execute(
        config,
        EraseParams(
            device=device,
            media_type=MediaType(media_type),
            blank_mode=BlankMode(mode),
            eject=eject,
        ),
    )


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-o",
    "--output-dir",
    required=True,
    type=click.Path(file_okay=False, exists=True),
    help="Directory for the converted files.",
)
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in AudioFormat]),
    default=AudioFormat.WAV.value,
    help="Output audio format (wav is CD quality).",
)
@click.option("--bitrate", type=int, default=320, help="MP3 bitrate in kbps.")
@click.pass_obj
def convert(
    config: PipelineConfig,
    files: tuple[str, ...],
    output_dir: str,
    fmt: str,
    bitrate: int,
) -> None:
    """Convert audio files without burning them."""
    _execute(
        config,
        ConvertParams(
            tracks=_audio_tracks(config, files),
            output_dir=Path(output_dir).resolve(),
            format=AudioFormat(fmt),
            mp3_bitrate=bitrate,
        ),
    )
