"""Stage registry -- maps Stage enum values to run functions.

Every stage is ``run(pipeline_run) -> None``. Stages read parameters from
``pipeline_run.params``, pass results forward through
``pipeline_run.artifacts``, raise PipelineError subclasses on failure, and
check the cancellation token before each tool invocation or per-track step.

Stages:
    validate -- Reject bad parameters before any tool runs: missing drive,
                missing inputs, nothing selected, capacity exceeded without
                overburn (audio durations must be supplied up front,
                data size summed over files and directories), unsupported
                image types, non-rewritable media for erase, missing output
                directory, insufficient free space in work_dir.
    stage-files -- Burn-image: copy a CUE sheet and its BIN files into the
                   temp dir with FILE directives rewritten to bare names.
                   Burn-data: write the mkisofs graft-point list.
    convert -- ffmpeg every track to 44.1 kHz/16-bit/stereo WAV
               (track01.wav, ...), linking files already in that format.
               Progress per track in seconds against the track duration.
               Convert: encode each file to the requested format and move it
               to the output directory once ffmpeg has finished.
    generate-toc -- Write disc.toc (CD_DA, optional CD-TEXT, ISRC, pre-gaps).
    master -- mkisofs the graft-point list into disc.iso.
    read -- cdrdao read-cd (CD) or dd (DVD/BD) into the temp dir; read-image
            then moves the result to its destination.
    write -- cdrdao for TOC/CUE/audio/CD media, growisofs or xorriso for ISO
             images on DVD/BD. Marks the run as needing a drive unlock.
    blank -- cdrdao blank for CD-RW, dvd+rw-format for DVD+-RW/RAM/BD-RE.
    extract-tracks -- Cut the raw read into per-track files with ffmpeg and
                      move each finished file to the output directory.
    cleanup -- Remove the temp dir and log file (always runs; the failure path
               also unlocks the drive after an aborted cdrdao run).
"""

from ..models import Stage


def get_stage_runner(stage: Stage):
    """Return the run function for a given stage."""
    if stage == Stage.VALIDATE:
        from .validate import run as validate_run

        return validate_run

    if stage == Stage.STAGE_FILES:
        from .stage_files import run as stage_files_run

        return stage_files_run

    if stage == Stage.CONVERT:
        from .convert import run as convert_run

        return convert_run

    if stage == Stage.GENERATE_TOC:
        from .generate_toc import run as generate_toc_run

        return generate_toc_run

    if stage == Stage.MASTER:
        from .master import run as master_run

        return master_run

    if stage == Stage.READ:
        from .read import run as read_run

        return read_run

    if stage == Stage.WRITE:
        from .write import run as write_run

        return write_run

    if stage == Stage.BLANK:
        from .blank import run as blank_run

        return blank_run

    if stage == Stage.EXTRACT_TRACKS:
        from .extract import run as extract_run

        return extract_run

    if stage == Stage.CLEANUP:
        from .cleanup import run as cleanup_run

        return cleanup_run

    raise NotImplementedError(f"Stage '{stage.value}' is not implemented.")
