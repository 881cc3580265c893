"""Command-line interface entry point."""

from __future__ import annotations

import sys
from collections.abc import Callable
from functools import partial
from typing import Annotated, Any

from cyclopts import App, Parameter
from pydantic import TypeAdapter, ValidationError

from .backend import EncodingService
from .hls import PlaylistGenerator, validate_master
from .models import EncoderError, RuntimeContext, Settings, StreamAnalysis
from .models.options import (
    EncodeOptions,
    ExtractOptions,
    OcrOptions,
    PlaylistOptions,
    PreviewOptions,
    ProbeOptions,
    RuntimeOptions,
    SpriteOptions,
)
from .models.types import OutputMode, VideoCodec
from .tasks import (
    ConvertSubtitleTask,
    CropDetectTask,
    DurationTask,
    ExtractChaptersTask,
    ExtractFontsTask,
    FingerprintTask,
    GenerateSpriteTask,
    ProbeTask,
)
from .tools import CodecSelector, HardwareAccelerationDetector, MediaAnalyzer

StatusCallback = Annotated[Callable[[str], None] | None, Parameter(show=False)]  # type: ignore[call-arg]

app = App(name="hlsforge", help="Hardware-aware FFmpeg transcoding into HLS packages.")

_ANALYSIS_ADAPTER = TypeAdapter(StreamAnalysis)


def _context(runtime: RuntimeOptions, status_callback: Callable[[str], None] | None) -> RuntimeContext:
    return RuntimeContext(
        settings=Settings.from_env(),
        verbosity=runtime.verbosity,
        dry_run=runtime.dry_run,
        status_callback=print if status_callback is None else status_callback,
    )


def _fail(message: str, status_callback: Callable[[str], None] | None) -> int:
    err_func = partial(print, file=sys.stderr, flush=True) if status_callback is None else status_callback
    err_func(message)
    return 1


def _report(value: object, status_callback: Callable[[str], None] | None) -> int:
    out = print if status_callback is None else status_callback
    out("" if value is None else str(value))
    return 0


@app.command
def analyze(opts: ProbeOptions, status_callback: StatusCallback = None) -> int:
    """Print the streams and chapters of a media file as JSON."""
    with _context(opts.runtime, status_callback) as ctx:
        try:
            analysis = MediaAnalyzer(ctx).analyze(opts.source)
        except (EncoderError, OSError) as e:
            return _fail(str(e), status_callback)
    return _report(_ANALYSIS_ADAPTER.dump_json(analysis, indent=2).decode(), status_callback)


@app.command
def accelerators(status_callback: StatusCallback = None) -> int:
    """List usable hardware backends and the encoder chosen per codec family."""
    detector = HardwareAccelerationDetector()
    selector = CodecSelector(detector)
    recommended = detector.get_recommended()
    lines = [f"available: {', '.join(k.value for k in detector.get_available_accelerators()) or 'none'}"]
    lines.append(f"recommended: {recommended.value if recommended else 'software'}")
    lines.extend(f"{codec.value}: {selector.select(codec)}" for codec in VideoCodec)
    return _report("\n".join(lines), status_callback)


def _run_encode(
    opts: EncodeOptions,
    status_callback: Callable[[str], None] | None,
    *,
    start: float | None = None,
    duration: float | None = None,
) -> int:
    try:
        profile = opts.load_profile()
    except (ValidationError, OSError) as e:
        return _fail(f"Invalid profile {opts.profile}: {e}", status_callback)
    with _context(opts.runtime, status_callback) as ctx:
        service = EncodingService(ctx)
        args = (opts.source, profile, opts.output_folder, opts.base_name)
        if duration is not None:
            result = service.encode_preview(*args, start=start or 0.0, duration=duration, mode=opts.mode)
        elif opts.mode is OutputMode.SEPARATE_STREAMS:
            result = service.encode_separate_streams(*args)
        else:
            result = service.encode(*args)
    if result.cancelled:
        return _fail("Encoding cancelled", status_callback)
    if not result.success:
        details = [result.error_message or "Encoding failed"]
        details.extend(f"  {f.folder_name}: {f.error_message}" for f in result.rendition_failures)
        return _fail("\n".join(details), status_callback)
    return _report(result.output_path, status_callback)


@app.command
def encode(opts: EncodeOptions, status_callback: StatusCallback = None) -> int:
    """Encode a source into an HLS package using an encoder profile."""
    return _run_encode(opts, status_callback)


@app.command
def preview(opts: PreviewOptions, status_callback: StatusCallback = None) -> int:
    """Encode a short window of a source."""
    return _run_encode(opts, status_callback, start=opts.time.start_s, duration=opts.time.duration_s)


@app.command
def playlist(opts: PlaylistOptions, status_callback: StatusCallback = None) -> int:
    """Rebuild the master playlist of an encoded package."""
    with _context(opts.runtime, status_callback) as ctx:
        master = PlaylistGenerator(ctx).build(opts.folder, opts.master_name, opts.duration_s)
    if master is None:
        return _fail(f"No renditions found in {opts.folder}", status_callback)
    report = validate_master(master)
    report.log()
    if not report.ok:
        return _fail(f"Invalid master playlist {master}: {'; '.join(report.errors)}", status_callback)
    return _report(master, status_callback)


def _run_task(
    runtime: RuntimeOptions,
    status_callback: Callable[[str], None] | None,
    factory: Callable[[RuntimeContext], ProbeTask[Any]],
) -> int:
    with _context(runtime, status_callback) as ctx:
        task = factory(ctx)
        try:
            result = task.run(timeout=runtime.timeout)
        except (EncoderError, OSError) as e:
            return _fail(str(e), status_callback)
    return _report(result, status_callback)


@app.command
def duration(opts: ProbeOptions, status_callback: StatusCallback = None) -> int:
    """Print the container duration in seconds."""
    return _run_task(opts.runtime, status_callback, lambda ctx: DurationTask(ctx, opts.source))


@app.command
def crop(opts: ProbeOptions, status_callback: StatusCallback = None) -> int:
    """Print the most common crop rectangle as W:H:X:Y."""
    return _run_task(opts.runtime, status_callback, lambda ctx: CropDetectTask(ctx, opts.source))


@app.command
def fingerprint(opts: ProbeOptions, status_callback: StatusCallback = None) -> int:
    """Print the Chromaprint fingerprint of the first audio stream."""
    return _run_task(opts.runtime, status_callback, lambda ctx: FingerprintTask(ctx, opts.source))


@app.command
def chapters(opts: ExtractOptions, status_callback: StatusCallback = None) -> int:
    """Write the chapters of a source as chapters.vtt."""
    return _run_task(
        opts.runtime, status_callback, lambda ctx: ExtractChaptersTask(ctx, opts.source, opts.destination)
    )


@app.command
def fonts(opts: ExtractOptions, status_callback: StatusCallback = None) -> int:
    """Extract embedded fonts and write fonts.json."""
    return _run_task(opts.runtime, status_callback, lambda ctx: ExtractFontsTask(ctx, opts.source, opts.destination))


@app.command
def ocr(opts: OcrOptions, status_callback: StatusCallback = None) -> int:
    """Convert an image-based subtitle stream to WebVTT."""
    return _run_task(
        opts.runtime,
        status_callback,
        lambda ctx: ConvertSubtitleTask(ctx, opts.source, opts.destination, opts.file_name, opts.language, opts.kind),
    )


@app.command
def sprite(opts: SpriteOptions, status_callback: StatusCallback = None) -> int:
    """Tile extracted thumbnails into a sprite sheet with a WebVTT index."""
    return _run_task(
        opts.runtime,
        status_callback,
        lambda ctx: GenerateSpriteTask(ctx, opts.folder, opts.width, opts.height, opts.interval),
    )


def main(argv: list[str] | None = None) -> int:
    """Run the hlsforge CLI."""
    argv = sys.argv[1:] if argv is None else argv
    return app(argv)


if __name__ == "__main__":
    raise SystemExit(main())
