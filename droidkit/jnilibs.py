"""The `jniLibs` directories of the generated Android project."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .config import AndroidConfig

log = logging.getLogger(__name__)


class RemoveBrokenLinksError(OSError):
    """A broken symlink in a jniLibs directory could not be cleaned up."""

    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


class SymlinkLibError(Exception):
    """A library could not be linked into a jniLibs directory."""

    def __init__(self, message: str, missing: Path | None = None):
        super().__init__(message)
        self.missing = missing


def jnilibs_path(config: AndroidConfig, abi: str) -> Path:
    """The jniLibs directory for the given ABI."""
    return config.project_dir() / "app" / "src" / "main" / "jniLibs" / abi


def _force_symlink(src: Path, dest: Path) -> None:
    if dest.is_symlink() or dest.exists():
        dest.unlink()
    os.symlink(src, dest)


@dataclass(frozen=True)
class JniLibs:
    """A jniLibs directory that libraries can be linked into."""

    path: Path

    @classmethod
    def create(cls, config: AndroidConfig, abi: str) -> JniLibs:
        path = jnilibs_path(config, abi)
        path.mkdir(parents=True, exist_ok=True)
        return cls(path)

    @classmethod
    def remove_broken_links(cls, config: AndroidConfig, abis: Iterable[str]) -> None:
        """Delete symlinks whose targets no longer exist, in each ABI's directory."""
        for abi_dir in (jnilibs_path(config, abi) for abi in abis):
            if not abi_dir.is_dir():
                continue
            try:
                entries = list(abi_dir.iterdir())
            except OSError as err:
                raise RemoveBrokenLinksError(
                    f"Failed to list contents of jniLibs directory {str(abi_dir)!r}: {err}",
                    abi_dir,
                ) from err
            for entry in entries:
                if not entry.is_symlink():
                    continue
                link_target = os.readlink(entry)
                log.info("symlink at %r points to %r", str(entry), link_target)
                if entry.exists():
                    continue
                log.info(
                    "deleting broken symlink %r (points to %r, which doesn't exist)",
                    str(entry),
                    link_target,
                )
                try:
                    entry.unlink()
                except OSError as err:
                    raise RemoveBrokenLinksError(
                        f"Failed to remove broken symlink {link_target}: {err}",
                        Path(link_target),
                    ) from err

    def symlink_lib(self, src: str | Path) -> None:
        """Link the file at `src` into this directory under its own name."""
        src = Path(src)
        log.info("symlinking lib %r in jniLibs dir %r", str(src), str(self.path))
        if not src.is_file():
            raise SymlinkLibError(
                f"The symlink source is {src}, but nothing exists there", missing=src
            )
        try:
            _force_symlink(src, self.path / src.name)
        except OSError as err:
            raise SymlinkLibError(f"Failed to symlink lib: {err}") from err