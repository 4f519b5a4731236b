"""Burn Pipeline -- burn, read, copy, extract and erase optical discs.

Core modules:
    config       -- Pipeline configuration via pydantic-settings (.env + env vars)
    cli          -- Click CLI entry point, one subcommand per operation
    orchestrator -- Runs an operation's stages in order; one run at a time,
                    always ends in a terminal phase with temp files removed
    state        -- Run state machine (forward-only phases, cancelling) and
                    progress snapshot
    tool_step    -- Runs one external tool, tailing its log into the state
    executor     -- Subprocess executor with SIGINT cancellation via psutil
    tailer       -- Offset-based log file tailer on a background thread
    errors       -- Exception hierarchy and per-tool error classification
    params       -- Operation parameter dataclasses
    commands     -- Argument builders for cdrdao, growisofs, xorriso,
                    dvd+rw-format, mkisofs, dd and ffmpeg
    descriptors  -- cdrdao TOC generation/parsing and CUE sheet staging
    probe        -- Audio file inspection via ffprobe subprocess
    sanitize     -- Filename and volume label sanitization
    concurrency  -- Device locks, cancellation token, disk space checks

Subpackages:
    parsers -- Pure line parsers turning tool output into OutputEvents
    stages  -- Pipeline stages (validate through cleanup)
"""
