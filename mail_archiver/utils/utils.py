import asyncio
import importlib.metadata
import re
from typing import Awaitable, List, TypeVar

T = TypeVar("T")


_ILLEGAL_CHARS_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]+')
_WHITESPACE_RE = re.compile(r"\s+")

# Names Windows refuses regardless of extension
_RESERVED_NAMES = {"CON", "PRN", "AUX", "NUL"} | {
    f"{prefix}{i}" for prefix in ("COM", "LPT") for i in range(1, 10)
}


def sanitize_path_component(name: str, default: str, max_length: int = 120) -> str:
    """
    Turns an arbitrary string into a single safe path component.

    Path separators, characters illegal on common filesystems and control
    characters become "_"; leading and trailing dots and spaces are dropped so the
    result can never be "." or "..".
    """
    name = _ILLEGAL_CHARS_RE.sub("_", name or "")
    name = _WHITESPACE_RE.sub(" ", name).strip(" .")
    name = name[:max_length].rstrip(" .")

    if not name or name.split(".")[0].upper() in _RESERVED_NAMES:
        return default
    return name


def sanitize_filename(name: str, default: str = "attachment", max_length: int = 120) -> str:
    """Sanitizes a sender supplied file name, keeping only its last path segment."""
    basename = re.split(r"[\\/]", name or "")[-1]
    stem, dot, ext = basename.rpartition(".")
    if not dot or not stem or len(ext) > 16:
        return sanitize_path_component(basename, default, max_length)

    ext = sanitize_path_component(ext, "", 16)
    stem = sanitize_path_component(stem, default, max_length - len(ext) - 1)
    return f"{stem}.{ext}" if ext else stem


def short_id_tag(message_id: str, n: int = 16) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9]", "", message_id or "")
    return cleaned[-n:] or "msg"


def get_version() -> str:
    try:
        return importlib.metadata.version("mail-archiver")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


async def gather_or_cancel(*aws: Awaitable[T]) -> List[T]:
    """
    Like asyncio.gather, results in argument order, but when one awaitable raises
    the others are cancelled and awaited before the error propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
