"""
Checklist parser and loaders.

A checklist document is YAML or JSON:

    name: "fs-smoke"
    checklist:
      - id: "File"
        parameters: ["/proc/net/tcp"]

Parsing decodes the document into the wire models below, looks every entry id
up in the registry, and validates a fresh Check per entry. Entries are bound
in a thread pool but written into a fixed-length list by index, so the
checklist keeps document order. Any error aborts the parse; nothing is probed.

Loaders stamp the origin: "file:<path>", "url:<url>", "dir:<path>/<name>",
"stdin". All of them reduce to ``parse_checklist(data, origin)``.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import orjson
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from distributive.check import Check
from distributive.errors import (
    ChecklistIOError,
    DecodeError,
    DistributiveError,
    EmptyChecklistError,
    UnknownCheckError,
)
from distributive.registry import Registry, registry as default_registry

logger = logging.getLogger(__name__)

CHECKLIST_SUFFIXES = (".yaml", ".yml", ".json")
DEFAULT_CACHE_DIR = "/var/run/distributive/"
FALLBACK_CACHE_DIR = "./.remote-checks"
# Characters dropped from a URL to build its cache file name
_CACHE_NAME_RE = re.compile(r'[/?%*:|"<^>.\\ ]')


# -----------------------------------------------------------------------------
# Wire models
# -----------------------------------------------------------------------------


def _scalar_to_str(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"parameters must be scalars, got {type(value).__name__}")


class CheckEntry(BaseModel):
    """One ``{id, parameters}`` entry. Extra keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    parameters: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def non_empty_id(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError("id must be a string")
        value = value.strip()
        if not value:
            raise ValueError("id must be a non-empty string")
        return value

    @field_validator("parameters", mode="before")
    @classmethod
    def coerce_parameters(cls, value: object) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("parameters must be a list")
        return [_scalar_to_str(v) for v in value]


class ChecklistDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    notes: str = ""
    checklist: list[CheckEntry] = Field(default_factory=list)

    @field_validator("name", "notes", mode="before")
    @classmethod
    def optional_text(cls, value: object) -> str:
        return "" if value is None else _scalar_to_str(value)

    @field_validator("checklist", mode="before")
    @classmethod
    def optional_list(cls, value: object) -> object:
        return [] if value is None else value


# -----------------------------------------------------------------------------
# Parsed form
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Checklist:
    name: str
    origin: str
    checks: tuple[Check, ...]
    # Entry ids as written in the document, parallel to ``checks``
    ids: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.checks)


def _loads(text: str) -> Any:
    # orjson first for JSON; YAML flow mappings also start with "{"
    if text.lstrip().startswith("{"):
        try:
            return orjson.loads(text)
        except orjson.JSONDecodeError:
            pass
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DecodeError(f"checklist could not be decoded: {exc}") from exc


def decode_document(data: bytes | str) -> ChecklistDocument:
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"checklist is not valid UTF-8: {exc}") from exc
    else:
        text = data

    raw = _loads(text)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise DecodeError(f"checklist root must be a mapping, got {type(raw).__name__}")
    try:
        return ChecklistDocument.model_validate(raw)
    except ValidationError as exc:
        raise DecodeError(f"checklist has an invalid shape:\n{exc}") from exc


def _bind_entry(registry: Registry, index: int, entry: CheckEntry) -> Check:
    factory = registry.lookup(entry.id)
    try:
        if factory is None:
            raise UnknownCheckError(entry.id)
        return factory().validate(entry.parameters)
    except DistributiveError as exc:
        raise exc.annotate(index, entry.id)


def parse_checklist(
    data: bytes | str,
    origin: str = "bytes",
    registry: Registry | None = None,
    max_workers: int | None = None,
) -> Checklist:
    if registry is None:
        registry = default_registry
    document = decode_document(data)
    entries = document.checklist
    if not entries:
        raise EmptyChecklistError(origin)

    checks: list[Check | None] = [None] * len(entries)
    errors: dict[int, DistributiveError] = {}
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bind") as pool:
        futures = {
            pool.submit(_bind_entry, registry, index, entry): index for index, entry in enumerate(entries)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                checks[index] = future.result()
            except DistributiveError as exc:
                errors[index] = exc

    if errors:
        # Report the first failing entry in document order
        raise errors[min(errors)]

    logger.debug("Parsed %d checks from %s", len(checks), origin)
    return Checklist(
        name=document.name,
        origin=origin,
        checks=tuple(checks),
        ids=tuple(entry.id for entry in entries),
    )


# -----------------------------------------------------------------------------
# Loaders
# -----------------------------------------------------------------------------


def checklist_from_bytes(data: bytes | str, origin: str = "bytes") -> Checklist:
    return parse_checklist(data, origin)


def checklist_from_file(path: str | Path) -> Checklist:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ChecklistIOError(str(path), exc) from exc
    return parse_checklist(data, origin=f"file:{path}")


def checklist_from_stdin(stream: BinaryIO | None = None) -> Checklist:
    stream = stream or sys.stdin.buffer
    try:
        data = stream.read()
    except OSError as exc:
        raise ChecklistIOError("stdin", exc) from exc
    return parse_checklist(data, origin="stdin")


def checklists_from_dir(path: str | Path) -> list[Checklist]:
    """Parse every .yaml/.yml/.json file directly inside ``path``, sorted by name."""
    directory = Path(path)
    try:
        names = sorted(
            entry.name
            for entry in os.scandir(directory)
            if entry.is_file() and entry.name.endswith(CHECKLIST_SUFFIXES)
        )
    except OSError as exc:
        raise ChecklistIOError(str(path), exc) from exc
    if not names:
        logger.warning("No checklists (%s) found in %s", ", ".join(CHECKLIST_SUFFIXES), path)

    checklists = []
    prefix = str(path).rstrip("/")
    for name in names:
        try:
            data = (directory / name).read_bytes()
        except OSError as exc:
            raise ChecklistIOError(str(directory / name), exc) from exc
        checklists.append(parse_checklist(data, origin=f"dir:{prefix}/{name}"))
    return checklists


def cache_file_name(url: str) -> str:
    return _CACHE_NAME_RE.sub("", url) + ".json"


def _cache_dir(primary: str | Path, fallback: str | Path) -> Path:
    for candidate in (Path(primary), Path(fallback)):
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.info("Cache directory %s unusable: %s", candidate, exc)
            continue
        if os.access(candidate, os.W_OK):
            return candidate
        logger.info("Cache directory %s is not writable", candidate)
    raise ChecklistIOError(str(fallback), "no writable cache directory for remote checklists")


def fetch_url(url: str, timeout: float = 10.0) -> bytes:
    if not re.match(r"^https?://", url, re.IGNORECASE):
        raise ChecklistIOError(url, "only http(s) URLs are supported")
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            return response.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise ChecklistIOError(url, exc) from exc


def checklist_from_url(
    url: str,
    use_cache: bool = True,
    cache_dir: str | Path = DEFAULT_CACHE_DIR,
    fallback_dir: str | Path = FALLBACK_CACHE_DIR,
    timeout: float = 10.0,
) -> Checklist:
    """Fetch a checklist over HTTP(S), caching the body on disk.

    With ``use_cache`` a previously cached copy is parsed instead of fetching.
    Without it the URL is always fetched and the cache refreshed.
    """
    cache_path = _cache_dir(cache_dir, fallback_dir) / cache_file_name(url)
    if use_cache and cache_path.is_file():
        logger.info("Using cached checklist %s for %s", cache_path, url)
        try:
            data = cache_path.read_bytes()
        except OSError as exc:
            raise ChecklistIOError(str(cache_path), exc) from exc
    else:
        logger.info("Fetching checklist %s", url)
        data = fetch_url(url, timeout)
        try:
            cache_path.write_bytes(data)
        except OSError as exc:
            raise ChecklistIOError(str(cache_path), exc) from exc
    return parse_checklist(data, origin=f"url:{url}")
