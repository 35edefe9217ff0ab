"""Locating and inspecting the Android NDK."""

from __future__ import annotations

import enum
import logging
import os
import re
import struct
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from string import ascii_lowercase
from typing import Any, Mapping

from .source_props import Revision, SourceProps, SourcePropsError

log = logging.getLogger(__name__)

_WINDOWS = sys.platform == "win32"
_AR = "ar.exe" if _WINDOWS else "ar"
_READELF = "readelf.exe" if _WINDOWS else "readelf"
_NEEDED_RE = re.compile(r"\(NEEDED\)\s+Shared library: \[(.+)\]", re.MULTILINE)
_LIBCXX_SHARED = "libc++_shared.so"


def host_tag() -> str:
    """Name of the NDK prebuilt directory for the running host."""
    if sys.platform == "darwin":
        return "darwin-x86_64"
    if _WINDOWS:
        return "windows-x86_64" if struct.calcsize("P") == 8 else "windows"
    return "linux-x86_64"


class Compiler(enum.Enum):
    CLANG = "clang.cmd" if _WINDOWS else "clang"
    CLANGXX = "clang++.cmd" if _WINDOWS else "clang++"


class Binutil(enum.Enum):
    LD = "ld.exe" if _WINDOWS else "ld"


class MissingToolError(Exception):
    """A tool expected inside the NDK is not where it should be."""

    def __init__(self, name: str, tried_path: Path):
        super().__init__(f"Missing tool `{name}`; tried at {str(tried_path)!r}.")
        self.name = name
        self.tried_path = tried_path

    @classmethod
    def check_file(cls, path: Path, name: str) -> Path:
        if Path(path).is_file():
            return Path(path)
        raise cls(name, Path(path))

    @classmethod
    def check_dir(cls, path: Path, name: str) -> Path:
        if Path(path).is_dir():
            return Path(path)
        raise cls(name, Path(path))


@dataclass(frozen=True, order=True)
class NdkVersion:
    """NDK release version, shown the way the NDK names releases (e.g. r21b)."""

    major: int
    minor: int

    @classmethod
    def from_revision(cls, revision: Revision) -> NdkVersion:
        return cls(revision.major, revision.minor)

    def __str__(self) -> str:
        text = f"r{self.major}"
        if self.minor != 0:
            if self.minor >= len(ascii_lowercase):
                raise ValueError(
                    "NDK minor version exceeded the number of letters in the alphabet"
                )
            text += ascii_lowercase[self.minor]
        return text


MIN_NDK_VERSION = NdkVersion(19, 0)


class NdkError(Exception):
    """The NDK environment could not be set up."""

    def __init__(
        self,
        message: str,
        *,
        you_have: NdkVersion | None = None,
        you_need: NdkVersion | None = None,
    ):
        super().__init__(message)
        self.you_have = you_have
        self.you_need = you_need


class RequiredLibsError(Exception):
    """The shared libraries an ELF file needs could not be determined."""


def parse_required_libs(output: str) -> set[str]:
    """Shared library names listed as NEEDED in `readelf -d` output."""
    return {match.group(1) for match in _NEEDED_RE.finditer(output)}


@dataclass(frozen=True)
class NdkEnv:
    """An installed NDK rooted at `home`."""

    home: Path

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> NdkEnv:
        environ = os.environ if environ is None else environ
        value = environ.get("NDK_HOME")
        if value is None:
            raise NdkError(
                "Have you installed the NDK? The `NDK_HOME` environment variable "
                "isn't set, and is required: environment variable not found"
            )
        home = Path(value)
        if not home.is_dir():
            raise NdkError(
                "Have you installed the NDK? The `NDK_HOME` environment variable is "
                "set, but doesn't point to an existing directory."
            )
        env = cls(home)
        try:
            version = NdkVersion.from_revision(env.version())
        except SourcePropsError as err:
            raise NdkError(f"Failed to lookup version of installed NDK: {err}") from err
        if version < MIN_NDK_VERSION:
            raise NdkError(
                f"At least NDK {MIN_NDK_VERSION} is required "
                f"(you currently have NDK {version})",
                you_have=version,
                you_need=MIN_NDK_VERSION,
            )
        return env

    def version(self) -> Revision:
        return SourceProps.from_path(self.home / "source.properties").revision

    def _version_or_default(self) -> Revision:
        try:
            return self.version()
        except SourcePropsError:
            return Revision()

    def prebuilt_dir(self) -> Path:
        return MissingToolError.check_dir(
            self.home / "toolchains" / "llvm" / "prebuilt" / host_tag(),
            "prebuilt toolchain",
        )

    def tool_dir(self) -> Path:
        return MissingToolError.check_dir(self.prebuilt_dir() / "bin", "tools")

    def compiler_path(self, compiler: Compiler, triple: str, min_api: int) -> Path:
        return MissingToolError.check_file(
            self.tool_dir() / f"{triple}{min_api}-{compiler.value}", compiler.value
        )

    def binutil_path(self, binutil: Binutil, triple: str) -> Path:
        return MissingToolError.check_file(
            self.tool_dir() / f"{triple}-{binutil.value}", binutil.value
        )

    def libcxx_shared_path(self, target: Any) -> Path:
        """Location of `libc++_shared.so` for a target with `triple` and `abi`."""
        if self._version_or_default().major >= 22:
            ndk_triple = (
                "arm-linux-androideabi"
                if target.triple == "armv7-linux-androideabi"
                else target.triple
            )
            so_dir = self.prebuilt_dir() / "sysroot" / "usr" / "lib" / ndk_triple
        else:
            so_dir = self.home / "sources" / "cxx-stl" / "llvm-libc++" / "libs" / target.abi
        return MissingToolError.check_file(so_dir / _LIBCXX_SHARED, _LIBCXX_SHARED)

    def _llvm_or_prefixed(self, triple: str, tool: str, name: str) -> Path:
        if self._version_or_default().major >= 23:
            file_name = f"llvm-{tool}"
        else:
            file_name = f"{triple}-{tool}"
        return MissingToolError.check_file(self.tool_dir() / file_name, name)

    def ar_path(self, triple: str) -> Path:
        return self._llvm_or_prefixed(triple, _AR, "ar")

    def readelf_path(self, triple: str) -> Path:
        return self._llvm_or_prefixed(triple, _READELF, "readelf")

    def required_libs(self, elf: str | Path, triple: str) -> set[str]:
        """Shared libraries the ELF file at `elf` declares as needed."""
        try:
            readelf = self.readelf_path(triple)
        except MissingToolError as err:
            raise RequiredLibsError(str(err)) from err
        try:
            result = subprocess.run(
                [str(readelf), "-d", str(Path(elf))], capture_output=True, check=True
            )
        except (OSError, subprocess.CalledProcessError) as err:
            raise RequiredLibsError(f"Failed to run `readelf`: {err}") from err
        try:
            output = result.stdout.decode("utf-8")
        except UnicodeDecodeError as err:
            raise RequiredLibsError(
                f"`readelf` output contained invalid UTF-8: {err}"
            ) from err
        libs = parse_required_libs(output)
        for lib in sorted(libs):
            log.info("%r requires shared lib %r", str(elf), lib)
        return libs