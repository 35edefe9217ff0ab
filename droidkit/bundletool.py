"""Installing and running `bundletool`."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import urllib.request
from dataclasses import dataclass
from pathlib import Path

DOWNLOAD_BASE = "https://github.com/google/bundletool/releases/download"


class BundletoolInstallError(Exception):
    """`bundletool` could not be installed."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


def default_tools_dir() -> Path:
    """Directory where downloaded tools are kept."""
    cargo_home = os.environ.get("CARGO_HOME")
    base = Path(cargo_home) if cargo_home else Path.home() / ".cargo"
    return base / ".droidkit" / "tools"


def _uses_brew() -> bool:
    return sys.platform == "darwin"


@dataclass(frozen=True)
class BundletoolJar:
    """A released `bundletool` jar."""

    version: str = "1.8.0"

    def file_name(self) -> str:
        return f"bundletool-all-{self.version}.jar"

    def installation_path(self, tools_dir: str | Path | None = None) -> Path:
        directory = Path(tools_dir) if tools_dir is not None else default_tools_dir()
        return directory / self.file_name()

    def download_url(self) -> str:
        return f"{DOWNLOAD_BASE}/{self.version}/{self.file_name()}"


BUNDLETOOL_JAR = BundletoolJar()


def bundletool_command(tools_dir: str | Path | None = None, *args: str) -> list[str]:
    """Command line running `bundletool` with the given arguments."""
    if _uses_brew():
        return ["bundletool", *args]
    return ["java", "-jar", str(BUNDLETOOL_JAR.installation_path(tools_dir)), *args]


def _install_with_brew(reinstall_deps: bool) -> None:
    if not reinstall_deps and shutil.which("bundletool") is not None:
        return
    action = "reinstall" if reinstall_deps else "install"
    try:
        subprocess.run(["brew", action, "bundletool"], check=True)
    except (OSError, subprocess.CalledProcessError) as err:
        raise BundletoolInstallError(f"Failed to install `bundletool`: {err}") from err


def _download_jar(tools_dir: Path, jar_path: Path) -> None:
    try:
        response = urllib.request.urlopen(BUNDLETOOL_JAR.download_url())
    except (OSError, ValueError) as err:
        raise BundletoolInstallError(f"Failed to download `bundletool`: {err}") from err
    with response:
        try:
            tools_dir.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise BundletoolInstallError(
                f"Failed to create bundletool.jar at {tools_dir}: {err}", tools_dir
            ) from err
        try:
            out = jar_path.open("wb")
        except OSError as err:
            raise BundletoolInstallError(
                f"Failed to create bundletool.jar at {jar_path}: {err}", jar_path
            ) from err
        with out:
            try:
                shutil.copyfileobj(response, out)
            except OSError as err:
                raise BundletoolInstallError(
                    f"Failed to copy content into bundletool.jar at {jar_path}: {err}",
                    jar_path,
                ) from err


def install(tools_dir: str | Path | None = None, reinstall_deps: bool = False) -> None:
    """Make `bundletool` available, fetching it if missing or if asked to."""
    if _uses_brew():
        _install_with_brew(reinstall_deps)
        return
    directory = Path(tools_dir) if tools_dir is not None else default_tools_dir()
    jar_path = BUNDLETOOL_JAR.installation_path(directory)
    if jar_path.exists() and not reinstall_deps:
        return
    _download_jar(directory, jar_path)