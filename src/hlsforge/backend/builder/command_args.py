"""Common FFmpeg command arguments."""

INPUT_FLAG: tuple[str, ...] = ("-i",)  #: Introduce an input file path.
OVERWRITE_OUTPUT: tuple[str, ...] = ("-y",)  #: Overwrite existing files.
HIDE_BANNER: tuple[str, ...] = ("-hide_banner",)  #: Suppress the build banner.
PROBE_SIZE: tuple[str, ...] = ("-probesize", "4092M")  #: Read deep into the input before choosing streams.
ANALYZE_DURATION: tuple[str, ...] = ("-analyzeduration", "9999M")  #: Analyze long inputs fully.
THREADS: tuple[str, ...] = ("-threads",)  #: Worker thread count.
STRIP_METADATA: tuple[str, ...] = ("-map_metadata", "-1")  #: Drop global metadata from the source.
SEEK: tuple[str, ...] = ("-ss",)  #: Input seek position.
DURATION: tuple[str, ...] = ("-t",)  #: Input read duration.
PROGRESS: tuple[str, ...] = ("-progress", "pipe:1", "-nostats")  #: Machine-readable progress on stdout.
