"""Stream selection and per-stream codec arguments."""

MAP_FLAG = "-map"  #: Flag to map a stream.


def spec(kind: str, index: int | None = 0, *, input_index: int = 0, optional: bool = False) -> str:
    """Return a formatted stream specifier.

    Args:
        kind: Stream type identifier (e.g. "v", "a", "s").
        index: Index within that stream type, or ``None`` for all of them.
        input_index: Input file index.
        optional: Whether a missing stream should be ignored.

    Returns:
        A selector like ``0:v:0``, ``0:a:2`` or ``0:s?``.

    """
    idx = "" if index is None else f":{index}"
    opt = "?" if optional else ""
    return f"{input_index}:{kind}{idx}{opt}"


def map_stream(kind: str, index: int | None = 0, *, optional: bool = False) -> tuple[str, ...]:
    """Return ``-map`` arguments for one input stream."""
    return (MAP_FLAG, spec(kind, index, optional=optional))


def codec(kind: str, name: str) -> tuple[str, ...]:
    """Return ``-c:<kind> <name>``."""
    return (f"-c:{kind}", name)


def bitrate(kind: str, kbps: int) -> tuple[str, ...]:
    """Return ``-b:<kind> <kbps>k``."""
    return (f"-b:{kind}", f"{kbps}k")


def disable(kind: str) -> tuple[str, ...]:
    """Return the flag that drops every stream of ``kind``."""
    return (f"-{kind}n",)


def options(opts: dict[str, str]) -> tuple[str, ...]:
    """Flatten ``{"flag": "value"}`` pairs into ``-flag value`` arguments."""
    args: list[str] = []
    for key, value in opts.items():
        args.append(key if key.startswith("-") else f"-{key}")
        if value != "":
            args.append(value)
    return tuple(args)
