"""Sequence analysis, encoder selection, command building and execution for one job."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from hlsforge.events import ENCODE_FINISHED, ENCODE_STARTED, Event, EventPublisher, LoggingPublisher, progress_event
from hlsforge.hls.layout import HLSOutputOrchestrator
from hlsforge.hls.validation import validate_master
from hlsforge.models.errors import AnalysisError, EncoderError
from hlsforge.models.plan import EncodePlan
from hlsforge.models.results import EncodingResult, RenditionFailure
from hlsforge.models.types import Container, OutputMode, Verbosity
from hlsforge.tasks.crop import CropDetectTask
from hlsforge.tools.analyzer import MediaAnalyzer
from hlsforge.tools.codecs import CodecSelector
from hlsforge.tools.hardware import HardwareAccelerationDetector
from hlsforge.tools.helpers import emit_status

from .builder import build_commands, output_path, separate_commands
from .executor import ProcessExecutor

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from hlsforge.models.context import RuntimeContext
    from hlsforge.models.hls import HLSOutputStructure
    from hlsforge.models.profile import EncoderProfile
    from hlsforge.models.results import EncodingProgress, ExecutionResult, ProgressId
    from hlsforge.tools.throttle import ProbeThrottle

ENCODE_FAILED = "Encoding failed"

type ProgressCallback = Callable[[EncodingProgress], None]

logger = logging.getLogger(__name__)


def _ensure_output_folder(path: Path) -> None:
    """Create the output folder if missing.

    Raises:
        OSError: If ``path`` exists and is not a directory, or cannot be created.

    """
    if path.exists() and not path.is_dir():
        raise OSError(f"Output path is not a directory: {path}")
    path.mkdir(parents=True, exist_ok=True)


class EncodingService:
    """Façade running one encode request end to end.

    Collaborators are created from ``ctx`` unless supplied. Every public
    encode method returns an :class:`EncodingResult` and never raises for
    analysis, profile, process or cancellation failures.
    """

    def __init__(
        self,
        ctx: RuntimeContext,
        *,
        analyzer: MediaAnalyzer | None = None,
        detector: HardwareAccelerationDetector | None = None,
        selector: CodecSelector | None = None,
        executor: ProcessExecutor | None = None,
        orchestrator: HLSOutputOrchestrator | None = None,
        publisher: EventPublisher | None = None,
        throttle: ProbeThrottle | None = None,
    ) -> None:
        self.ctx = ctx
        self.throttle = throttle
        self.analyzer = analyzer or MediaAnalyzer(ctx, throttle)
        self.detector = detector or HardwareAccelerationDetector()
        self.selector = selector or CodecSelector(self.detector)
        self.executor = executor or ProcessExecutor(ctx)
        self.orchestrator = orchestrator or HLSOutputOrchestrator(ctx)
        self.publisher = publisher or LoggingPublisher()

    def _detect_crop(self, input_path: str | Path) -> str | None:
        """Run crop detection, or return ``None`` when it fails."""
        try:
            crop = CropDetectTask(self.ctx, input_path, throttle=self.throttle).run(
                timeout=self.ctx.settings.probe_timeout_s
            )
        except (EncoderError, OSError) as e:
            logger.warning("Crop detection failed for %s, encoding uncropped: %s", input_path, e)
            return None
        logger.info("Detected crop %s for %s", crop, input_path)
        return crop

    def create_plan(
        self,
        input_path: str | Path,
        profile: EncoderProfile,
        output_folder: str | Path,
        base_name: str,
        *,
        start: float | None = None,
        duration: float | None = None,
    ) -> EncodePlan:
        """Analyze the input and resolve an encoder for every video profile.

        With ``profile.auto_crop`` set, black borders are detected first and
        the rectangle is stored on the plan. A failed detection only logs.

        Raises:
            FileNotFoundError: If ``input_path`` does not exist.
            AnalysisError: If probing fails or the input has no media streams.

        """
        analysis = self.analyzer.analyze(input_path)
        if not analysis.has_media:
            raise AnalysisError(f"No video or audio streams in {input_path}")
        crop = None
        if profile.auto_crop and analysis.primary_video is not None:
            crop = self._detect_crop(input_path)
        encoders = [self.selector.resolve_best_codec(video.codec) for video in profile.video_profiles]
        settings = self.ctx.settings
        return EncodePlan(
            input_path=Path(input_path),
            analysis=analysis,
            profile=profile,
            output_folder=Path(output_folder),
            base_name=base_name,
            video_encoders=tuple(encoders),
            accelerators=tuple(self.selector.backend_for(e) for e in encoders),
            threads=settings.threads,
            segment_duration=settings.segment_duration,
            start=start,
            duration=duration,
            crop=crop,
        )

    def _progress_sink(self, callback: ProgressCallback | None) -> ProgressCallback:
        def sink(progress: EncodingProgress) -> None:
            self.publisher.publish(progress_event(progress))
            if callback is not None:
                callback(progress)

        return sink

    @staticmethod
    def _rendition_sink(sink: ProgressCallback, index: int, count: int) -> ProgressCallback:
        """Map the progress of rendition ``index`` of ``count`` onto the whole job."""

        def scaled(progress: EncodingProgress) -> None:
            sink(
                replace(
                    progress,
                    percentage=(index * 100.0 + progress.percentage) / count,
                    finished=progress.finished and index == count - 1,
                )
            )

        return scaled

    def _finished(self, result: EncodingResult, progress_id: ProgressId | None) -> EncodingResult:
        self.publisher.publish(
            Event(
                ENCODE_FINISHED,
                progress_id,
                {
                    "success": result.success,
                    "cancelled": result.cancelled,
                    "exit_code": result.exit_code,
                    "error": result.error_message,
                },
            )
        )
        if result.error_message and self.ctx.verbosity > Verbosity.QUIET:
            emit_status(result.error_message, status_callback=self.ctx.status_callback)
        return result

    @staticmethod
    def _total_duration(plan: EncodePlan) -> float:
        if plan.duration is not None:
            return plan.duration
        return max(0.0, plan.analysis.duration - (plan.start or 0.0))

    def _plan_or_failure(
        self,
        input_path: str | Path,
        profile: EncoderProfile,
        output_folder: str | Path,
        base_name: str,
        start: float | None,
        duration: float | None,
    ) -> EncodePlan | EncodingResult:
        try:
            plan = self.create_plan(input_path, profile, output_folder, base_name, start=start, duration=duration)
            if not self.ctx.dry_run:
                _ensure_output_folder(plan.output_folder)
        except (EncoderError, OSError) as e:
            logger.warning("%s: %s", ENCODE_FAILED, e)
            return EncodingResult.failure(f"{ENCODE_FAILED}: {e}")
        return plan

    def _run_combined(
        self,
        plan: EncodePlan,
        progress_callback: ProgressCallback | None,
        cancel: threading.Event | None,
        progress_id: ProgressId | None,
    ) -> EncodingResult:
        started = time.monotonic()
        try:
            (args,) = build_commands(plan, OutputMode.COMBINED)
        except EncoderError as e:
            return EncodingResult.failure(f"{ENCODE_FAILED}: {e}")
        result = self.executor.execute(
            args,
            progress_callback=self._progress_sink(progress_callback),
            cancel=cancel,
            total_duration=self._total_duration(plan),
            progress_id=progress_id,
        )
        elapsed = time.monotonic() - started
        if result.cancelled:
            return EncodingResult(success=False, exit_code=-1, duration=elapsed, cancelled=True)
        if not result.success:
            return EncodingResult.failure(
                f"{ENCODE_FAILED}: {result.error_message}", exit_code=result.exit_code, duration=elapsed
            )
        return EncodingResult(
            success=True,
            output_path=output_path(plan),
            duration=elapsed,
            exit_code=result.exit_code,
        )

    def _run_separate(
        self,
        plan: EncodePlan,
        progress_callback: ProgressCallback | None,
        cancel: threading.Event | None,
        progress_id: ProgressId | None,
    ) -> EncodingResult:
        if plan.profile.container != Container.HLS:
            logger.warning("Separate streams always write HLS, ignoring container %s", plan.profile.container.value)
        started = time.monotonic()
        structure = self.orchestrator.create_output_structure(
            plan.output_folder, plan.base_name, plan.analysis, plan.profile, crop=plan.crop
        )
        if not structure.renditions:
            return EncodingResult.failure(f"{ENCODE_FAILED}: profile {plan.profile.name!r} yields no renditions")
        try:
            commands = separate_commands(plan, structure)
        except EncoderError as e:
            return EncodingResult.failure(f"{ENCODE_FAILED}: {e}")
        if not self.ctx.dry_run:
            self.orchestrator.prepare(structure)

        sink = self._progress_sink(progress_callback)
        total = self._total_duration(plan)
        failures: list[RenditionFailure] = []
        for index, (rendition, args) in enumerate(commands):
            if cancel is not None and cancel.is_set():
                return self._cancelled(structure, started)
            result: ExecutionResult = self.executor.execute(
                args,
                progress_callback=self._rendition_sink(sink, index, len(commands)),
                cancel=cancel,
                total_duration=total,
                progress_id=progress_id,
            )
            if result.cancelled:
                return self._cancelled(structure, started)
            if not result.success:
                logger.warning("Rendition %s failed with exit code %d", rendition.folder_name, result.exit_code)
                failures.append(
                    RenditionFailure(rendition.folder_name, result.exit_code, result.error_message or ENCODE_FAILED)
                )

        elapsed = time.monotonic() - started
        if failures:
            names = ", ".join(f.folder_name for f in failures)
            return EncodingResult(
                success=False,
                error_message=f"{ENCODE_FAILED}: {len(failures)} of {len(commands)} renditions failed ({names})",
                exit_code=failures[0].exit_code,
                duration=elapsed,
                hls_output=structure,
                rendition_failures=tuple(failures),
            )
        master = structure.master_playlist_path
        if not self.ctx.dry_run:
            master = self.orchestrator.generate_playlists(structure, total) or master
            report = validate_master(master)
            report.log()
            if not report.ok:
                return EncodingResult(
                    success=False,
                    output_path=master,
                    error_message=f"{ENCODE_FAILED}: invalid master playlist ({report.errors[0]})",
                    exit_code=-1,
                    duration=time.monotonic() - started,
                    hls_output=structure,
                )
        return EncodingResult(
            success=True,
            output_path=master,
            duration=time.monotonic() - started,
            hls_output=structure,
        )

    @staticmethod
    def _cancelled(structure: HLSOutputStructure, started: float) -> EncodingResult:
        return EncodingResult(
            success=False,
            exit_code=-1,
            duration=time.monotonic() - started,
            hls_output=structure,
            cancelled=True,
        )

    def _encode(
        self,
        mode: OutputMode,
        input_path: str | Path,
        profile: EncoderProfile,
        output_folder: str | Path,
        base_name: str,
        *,
        start: float | None = None,
        duration: float | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
        progress_id: ProgressId | None = None,
    ) -> EncodingResult:
        self.publisher.publish(
            Event(ENCODE_STARTED, progress_id, {"input": str(input_path), "profile": profile.name, "mode": mode.value})
        )
        planned = self._plan_or_failure(input_path, profile, output_folder, base_name, start, duration)
        if isinstance(planned, EncodingResult):
            return self._finished(planned, progress_id)
        runner = self._run_combined if mode is OutputMode.COMBINED else self._run_separate
        return self._finished(runner(planned, progress_callback, cancel, progress_id), progress_id)

    def encode(
        self,
        input_path: str | Path,
        profile: EncoderProfile,
        output_folder: str | Path,
        base_name: str,
        *,
        progress_callback: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
        progress_id: ProgressId | None = None,
    ) -> EncodingResult:
        """Encode into one muxed output in the profile container.

        HLS writes ``{output_folder}/{base_name}.m3u8`` with its segments; MP4
        and MKV write ``{base_name}.mp4`` or ``{base_name}.mkv``.
        """
        return self._encode(
            OutputMode.COMBINED,
            input_path,
            profile,
            output_folder,
            base_name,
            progress_callback=progress_callback,
            cancel=cancel,
            progress_id=progress_id,
        )

    def encode_separate_streams(
        self,
        input_path: str | Path,
        profile: EncoderProfile,
        output_folder: str | Path,
        base_name: str,
        *,
        progress_callback: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
        progress_id: ProgressId | None = None,
    ) -> EncodingResult:
        """Encode each rendition into its own folder, then write the playlists.

        Renditions run one after another. A failed rendition is recorded and
        the rest still run; playlists are only written when all succeed.
        Reported progress covers the whole job rather than each rendition.
        """
        return self._encode(
            OutputMode.SEPARATE_STREAMS,
            input_path,
            profile,
            output_folder,
            base_name,
            progress_callback=progress_callback,
            cancel=cancel,
            progress_id=progress_id,
        )

    def encode_preview(
        self,
        input_path: str | Path,
        profile: EncoderProfile,
        output_folder: str | Path,
        base_name: str,
        *,
        start: float,
        duration: float,
        mode: OutputMode = OutputMode.COMBINED,
        progress_callback: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
        progress_id: ProgressId | None = None,
    ) -> EncodingResult:
        """Encode only ``duration`` seconds starting at ``start``."""
        return self._encode(
            mode,
            input_path,
            profile,
            output_folder,
            base_name,
            start=start,
            duration=duration,
            progress_callback=progress_callback,
            cancel=cancel,
            progress_id=progress_id,
        )


__all__ = ["ENCODE_FAILED", "EncodingService"]
