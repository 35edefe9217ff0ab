"""The Android SDK and NDK environment the tooling runs in."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .ndk import NdkEnv, NdkError
from .source_props import Revision, SourceProps

log = logging.getLogger(__name__)

_PASSTHROUGH_VARS = ("HOME",)


class AndroidEnvError(Exception):
    """The Android environment could not be set up."""

    def __init__(self, message: str, *, core: bool = False):
        super().__init__(message)
        self.core = core

    def sdk_or_ndk_issue(self) -> bool:
        """Whether the failure lies with the SDK or NDK rather than the base environment."""
        return not self.core


def _existing_dir(environ: Mapping[str, str], name: str) -> Path | None:
    value = environ.get(name)
    if value is None:
        return None
    path = Path(value)
    return path if path.is_dir() else None


def _find_android_home(environ: Mapping[str, str]) -> Path:
    value = environ.get("ANDROID_HOME")
    if value is not None and Path(value).is_dir():
        return Path(value)
    if value is None:
        message = (
            "Have you installed the Android SDK? The `ANDROID_HOME` environment "
            "variable isn't set, and is required: environment variable not found"
        )
    else:
        message = (
            "Have you installed the Android SDK? The `ANDROID_HOME` environment "
            "variable is set, but doesn't point to an existing directory."
        )
    sdk_root = _existing_dir(environ, "ANDROID_SDK_ROOT")
    if sdk_root is None:
        raise AndroidEnvError(message)
    log.warning(
        "`ANDROID_HOME` isn't set; falling back to `ANDROID_SDK_ROOT`, which is deprecated"
    )
    return sdk_root


@dataclass
class AndroidEnv:
    """Base environment variables plus the located SDK and NDK."""

    base: dict[str, str]
    android_home: Path
    ndk: NdkEnv
    extra_vars: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> AndroidEnv:
        environ = os.environ if environ is None else environ
        path = environ.get("PATH")
        if path is None:
            raise AndroidEnvError(
                "The `PATH` environment variable isn't set, and is required", core=True
            )
        base = {"PATH": path}
        base.update({name: environ[name] for name in _PASSTHROUGH_VARS if name in environ})
        android_home = _find_android_home(environ)
        try:
            ndk = NdkEnv.from_environ(environ)
        except NdkError as err:
            raise AndroidEnvError(str(err)) from err
        return cls(base=base, android_home=android_home, ndk=ndk)

    def path(self) -> str:
        return self.base["PATH"]

    def platform_tools_path(self) -> Path:
        return self.android_home / "platform-tools"

    def sdk_version(self) -> Revision:
        return SourceProps.from_path(self.android_home / "tools" / "source.properties").revision

    def explicit_env(self) -> dict[str, str]:
        """Variables to set explicitly for every tool this package runs."""
        envs = dict(self.base)
        envs.update(self.extra_vars)
        envs["ANDROID_HOME"] = str(self.android_home)
        envs["NDK_HOME"] = str(self.ndk.home)
        return envs