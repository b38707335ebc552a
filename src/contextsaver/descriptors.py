"""
Expert Descriptor persistence.

Descriptors are written once by discovery and read (never mutated) by a
serve session. File names embed a slug of the expert name plus a creation
timestamp so repeated discovery runs never overwrite each other.
"""

import json
import logging
import re
import time
from pathlib import Path

from pydantic import ValidationError

from contextsaver.core.errors import ConfigurationError, DescriptorLoadError
from contextsaver.core.types import ExpertDescriptor

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_UNSAFE_FILENAME = re.compile(r"[^a-z0-9._-]+")


def slugify(name: str) -> str:
    """Lower-case ``name`` and collapse inter-word whitespace to a single '-'."""
    return _WHITESPACE.sub("-", name.strip().lower())


def _filename_slug(name: str) -> str:
    # expert names come from the planner; never let them pick a directory
    return _UNSAFE_FILENAME.sub("-", slugify(name)).strip(".-") or "expert"


def descriptor_filename(name: str, now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{_filename_slug(name)}-{stamp}.json"


def save_descriptor(descriptor: ExpertDescriptor, directory: Path, now_ms: int | None = None) -> Path:
    path = directory / descriptor_filename(descriptor.name, now_ms)
    if not path.resolve().is_relative_to(directory.resolve()):
        raise ConfigurationError(f"Descriptor path {path} is outside {directory}")
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(descriptor.to_dict(), indent=2), encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot write descriptor {path}: {e.strerror or e}") from e
    logger.info(f"Saved expert descriptor to {path}")
    return path


def load_descriptor(path: Path | str) -> ExpertDescriptor:
    """Read and schema-validate a descriptor. Every failure is a DescriptorLoadError."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DescriptorLoadError(f"cannot read {path}: {e.strerror or e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DescriptorLoadError(f"{path} is not valid JSON: {e.msg} (line {e.lineno})") from e

    try:
        return ExpertDescriptor.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise DescriptorLoadError(f"{path} does not match the descriptor schema: {problems}") from e


def list_descriptors(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.glob("*.json") if p.is_file())
