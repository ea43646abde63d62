"""
Media processor adapters.

Callers only depend on ``MediaProcessor.concatenate``. Every implementation
here shells out to FFmpeg; they differ in how the inputs are handed over:

- demuxer: ordered manifest file, cheap, needs matching inputs
- filter: concat filter graph, re-encodes everything, tolerates mixed inputs
- auto: probes the inputs and picks one of the two
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from shared.config import Settings
from shared.errors import ProcessingFailedError
from shared.logging import get_logger

from .config import (
    NORMALIZE_CHANNEL_LAYOUT,
    NORMALIZE_FPS,
    NORMALIZE_HEIGHT,
    NORMALIZE_PIX_FMT,
    NORMALIZE_SAMPLE_RATE,
    NORMALIZE_WIDTH,
    OUTPUT_AUDIO_CODEC,
    OUTPUT_MOVFLAGS,
    OUTPUT_VIDEO_CODEC,
    PROBE_AUDIO_FIELDS,
    PROBE_VIDEO_FIELDS,
)
from .utils import probe_stream_signature, run_ffmpeg_command
from .workspace import JobWorkspace

logger = get_logger("concatenator.processor")


class MediaProcessor(ABC):
    """Concatenates ordered local media files into one output file."""

    name = "base"

    @abstractmethod
    async def concatenate(
        self,
        inputs: Sequence[Path],
        workspace: JobWorkspace,
        job_id: UUID
    ) -> Path:
        """
        Join ``inputs`` in order into the workspace output file.

        Returns:
            Path the output was written to

        Raises:
            ProcessingFailedError: If the processor reports a failure
        """


class FFmpegProcessor(MediaProcessor):
    """Shared FFmpeg invocation for the concrete strategies."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        timeout: float = 600,
        max_output_bytes: int = 50 * 1024 * 1024
    ):
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes

    def encode_args(self, output_path: Path) -> List[str]:
        return [
            "-c:v", OUTPUT_VIDEO_CODEC,
            "-c:a", OUTPUT_AUDIO_CODEC,
            "-movflags", OUTPUT_MOVFLAGS,
            "-y",
            str(output_path)
        ]

    @abstractmethod
    def build_command(self, inputs: Sequence[Path], workspace: JobWorkspace) -> List[str]:
        """FFmpeg argv writing to ``workspace.output_path``."""

    def prepare(self, inputs: Sequence[Path], workspace: JobWorkspace) -> None:
        """Hook for writing any files the command needs."""

    async def concatenate(
        self,
        inputs: Sequence[Path],
        workspace: JobWorkspace,
        job_id: UUID
    ) -> Path:
        if not inputs:
            raise ProcessingFailedError("No input files to concatenate")

        self.prepare(inputs, workspace)
        return await self.run(self.build_command(inputs, workspace), len(inputs), workspace, job_id)

    async def run(
        self,
        cmd: List[str],
        count: int,
        workspace: JobWorkspace,
        job_id: UUID
    ) -> Path:
        logger.info(
            f"Concatenating {count} videos ({self.name})",
            extra={"job_id": str(job_id), "strategy": self.name, "count": count}
        )
        await run_ffmpeg_command(
            cmd,
            job_id=job_id,
            timeout=self.timeout,
            max_output_bytes=self.max_output_bytes
        )
        return workspace.output_path


def escape_manifest_path(path: Path) -> str:
    """Quote a path for the concat demuxer's ``file`` directive."""
    return "'" + str(path).replace("'", "'\\''") + "'"


def build_manifest(inputs: Sequence[Path]) -> str:
    """One ``file '<path>'`` line per input, in order."""
    return "\n".join(f"file {escape_manifest_path(Path(p).resolve())}" for p in inputs) + "\n"


class DemuxerConcatProcessor(FFmpegProcessor):
    """
    List-driven concatenation through the concat demuxer.

    Inputs must share codec parameters; mismatches make FFmpeg fail.
    """

    name = "demuxer"

    def prepare(self, inputs: Sequence[Path], workspace: JobWorkspace) -> None:
        workspace.manifest_path.write_text(build_manifest(inputs), encoding="utf-8")

    def build_command(self, inputs: Sequence[Path], workspace: JobWorkspace) -> List[str]:
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-nostdin",
            "-f", "concat",
            "-safe", "0",
            "-i", str(workspace.manifest_path),
            *self.encode_args(workspace.output_path)
        ]


async def probe_inputs(inputs: Sequence[Path], ffprobe_binary: str = "ffprobe") -> List[Optional[tuple]]:
    """Stream signature per input, None where probing failed."""
    return [await probe_stream_signature(path, ffprobe_binary) for path in inputs]


def _valid_frame_rate(rate) -> bool:
    try:
        numerator, _, denominator = str(rate).partition("/")
        return float(numerator) > 0 and float(denominator or 1) > 0
    except ValueError:
        return False


def normalization_target(signatures: Sequence[Optional[tuple]]) -> Tuple[int, int, str, int]:
    """
    Common output format for the filter graph.

    Size and frame rate come from the first probed input, sample rate from the
    first probed audio stream. Anything unknown falls back to 1080p30 / 48 kHz.

    Returns:
        (width, height, frame_rate, sample_rate)
    """
    width, height, fps = NORMALIZE_WIDTH, NORMALIZE_HEIGHT, NORMALIZE_FPS
    sample_rate = NORMALIZE_SAMPLE_RATE

    video = next((s[0] for s in signatures if s is not None), None)
    if video is not None:
        props = dict(zip(PROBE_VIDEO_FIELDS, video))
        if props.get("width") and props.get("height"):
            # yuv420p needs even dimensions
            width = int(props["width"]) // 2 * 2
            height = int(props["height"]) // 2 * 2
        if _valid_frame_rate(props.get("r_frame_rate")):
            fps = str(props["r_frame_rate"])

    audio = next((s[1] for s in signatures if s is not None and s[1] is not None), None)
    if audio is not None:
        props = dict(zip(PROBE_AUDIO_FIELDS, audio))
        if props.get("sample_rate"):
            sample_rate = int(props["sample_rate"])

    return width, height, fps, sample_rate


def inputs_have_audio(signatures: Sequence[Optional[tuple]]) -> bool:
    """False if any input is known to lack an audio stream."""
    return all(s is None or s[1] is not None for s in signatures)


def build_concat_filter(signatures: Sequence[Optional[tuple]]) -> str:
    """
    Filter graph normalizing every input and joining them into [outv] (and [outa]).

    The concat filter needs identical size, SAR and sample format on every
    segment, so each input is scaled and padded to the target size, and its
    audio resampled to one layout. If any input has no audio the output is
    video only.
    """
    count = len(signatures)
    width, height, fps, sample_rate = normalization_target(signatures)
    with_audio = inputs_have_audio(signatures)

    chains = []
    segments = ""
    for i in range(count):
        chains.append(
            f"[{i}:v:0]scale={width}:{height}:force_original_aspect_ratio=decrease,"
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,"
            f"setsar=1,fps={fps},format={NORMALIZE_PIX_FMT}[v{i}]"
        )
        segments += f"[v{i}]"
        if with_audio:
            chains.append(
                f"[{i}:a:0]aresample={sample_rate},"
                f"aformat=sample_fmts=fltp:channel_layouts={NORMALIZE_CHANNEL_LAYOUT}[a{i}]"
            )
            segments += f"[a{i}]"

    if with_audio:
        chains.append(f"{segments}concat=n={count}:v=1:a=1[outv][outa]")
    else:
        chains.append(f"{segments}concat=n={count}:v=1:a=0[outv]")
    return ";".join(chains)


class FilterGraphConcatProcessor(FFmpegProcessor):
    """
    Concatenation through the concat filter.

    Every input is decoded, normalized to one size, frame rate and audio
    layout, then re-encoded, so differing encodings are fine.
    """

    name = "filter"

    def __init__(self, ffprobe_binary: str = "ffprobe", **options):
        super().__init__(**options)
        self.ffprobe_binary = ffprobe_binary

    def build_command(
        self,
        inputs: Sequence[Path],
        workspace: JobWorkspace,
        signatures: Optional[Sequence[Optional[tuple]]] = None
    ) -> List[str]:
        if signatures is None:
            signatures = [None] * len(inputs)

        cmd = [self.ffmpeg_binary, "-hide_banner", "-nostdin"]
        for path in inputs:
            cmd.extend(["-i", str(path)])
        cmd.extend(["-filter_complex", build_concat_filter(signatures), "-map", "[outv]"])
        if inputs_have_audio(signatures):
            cmd.extend(["-map", "[outa]"])
        cmd.extend(self.encode_args(workspace.output_path))
        return cmd

    async def concatenate(
        self,
        inputs: Sequence[Path],
        workspace: JobWorkspace,
        job_id: UUID,
        signatures: Optional[Sequence[Optional[tuple]]] = None
    ) -> Path:
        if not inputs:
            raise ProcessingFailedError("No input files to concatenate")

        if signatures is None:
            signatures = await probe_inputs(inputs, self.ffprobe_binary)
        cmd = self.build_command(inputs, workspace, signatures)
        return await self.run(cmd, len(inputs), workspace, job_id)


def signatures_match(signatures: Sequence[Optional[tuple]]) -> bool:
    """True when every input probed and all signatures are equal."""
    return all(s is not None for s in signatures) and len(set(signatures)) == 1


class AdaptiveConcatProcessor(MediaProcessor):
    """Uses the demuxer when every input probes identical, the filter graph otherwise."""

    name = "auto"

    def __init__(
        self,
        demuxer: DemuxerConcatProcessor,
        filter_graph: FilterGraphConcatProcessor,
        ffprobe_binary: str = "ffprobe"
    ):
        self.demuxer = demuxer
        self.filter_graph = filter_graph
        self.ffprobe_binary = ffprobe_binary

    async def concatenate(
        self,
        inputs: Sequence[Path],
        workspace: JobWorkspace,
        job_id: UUID
    ) -> Path:
        signatures = await probe_inputs(inputs, self.ffprobe_binary)
        compatible = signatures_match(signatures)
        chosen = self.demuxer if compatible else self.filter_graph
        logger.info(
            f"Inputs {'match' if compatible else 'differ'}, using {chosen.name} strategy",
            extra={"job_id": str(job_id), "strategy": chosen.name}
        )
        if compatible:
            return await self.demuxer.concatenate(inputs, workspace, job_id)
        return await self.filter_graph.concatenate(inputs, workspace, job_id, signatures=signatures)


def create_media_processor(settings: Settings) -> MediaProcessor:
    """
    Build the processor selected by ``CONCAT_STRATEGY``.

    Args:
        settings: Application settings

    Returns:
        MediaProcessor implementation
    """
    options = dict(
        ffmpeg_binary=settings.ffmpeg_binary,
        timeout=settings.ffmpeg_timeout,
        max_output_bytes=settings.ffmpeg_max_output_bytes,
    )
    if settings.concat_strategy == "demuxer":
        return DemuxerConcatProcessor(**options)
    if settings.concat_strategy == "filter":
        return FilterGraphConcatProcessor(ffprobe_binary=settings.ffprobe_binary, **options)
    return AdaptiveConcatProcessor(
        DemuxerConcatProcessor(**options),
        FilterGraphConcatProcessor(ffprobe_binary=settings.ffprobe_binary, **options),
        ffprobe_binary=settings.ffprobe_binary,
    )
