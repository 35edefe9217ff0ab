"""Building Android App Bundles with the generated project's gradle wrapper."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Sequence

from .common import NoiseLevel, Profile
from .config import AndroidConfig
from .env import AndroidEnv
from .target import Target

log = logging.getLogger(__name__)

_GRADLEW_MISSING = (
    "`gradlew` not found. Make sure you have the Android SDK installed and added to your PATH"
)


class AabError(Exception):
    """Building an AAB failed."""


def aab_path(config: AndroidConfig, profile: Profile, flavor: str) -> Path:
    """Where gradle writes the bundle of this flavor and profile."""
    return (
        config.project_dir()
        / f"app/build/outputs/bundle/{flavor}{profile.pascal_case()}"
        / f"app-{flavor}-{profile.value}.aab"
    )


def gradle_args(profile: Profile, targets: Sequence[Target], split_per_abi: bool) -> list[str]:
    """Gradle tasks and properties that bundle the requested AABs."""
    build_ty = profile.pascal_case()
    if split_per_abi:
        return [f"bundle{t.arch_upper_camel_case()}{build_ty}" for t in targets]
    args = [f"bundleUniversal{build_ty}"]
    if targets:
        args += [
            "-PabiList=" + ",".join(t.abi for t in targets),
            "-ParchList=" + ",".join(t.arch for t in targets),
            "-PtargetList=" + ",".join(t.triple.split("-")[0] for t in targets),
        ]
    return args


def _gradlew(config: AndroidConfig) -> Path:
    name = "gradlew.bat" if sys.platform == "win32" else "gradlew"
    return config.project_dir() / name


def build(
    config: AndroidConfig,
    env: AndroidEnv,
    noise_level: NoiseLevel,
    profile: Profile,
    targets: Sequence[Target],
    split_per_abi: bool,
) -> list[Path]:
    """Build AAB(s) and return the paths of the built files."""
    argv = [
        str(_gradlew(config)),
        *gradle_args(profile, targets, split_per_abi),
        noise_level.gradle_flag(),
    ]
    try:
        subprocess.run(
            argv,
            cwd=config.project_dir(),
            env={**os.environ, **env.explicit_env()},
            check=True,
        )
    except FileNotFoundError as err:
        log.error(_GRADLEW_MISSING)
        raise AabError(f"Failed to build AAB: {err}") from err
    except (OSError, subprocess.CalledProcessError) as err:
        raise AabError(f"Failed to build AAB: {err}") from err

    if split_per_abi:
        return [aab_path(config, profile, t.arch) for t in targets]
    return [aab_path(config, profile, "universal")]


def _green(text: str) -> str:
    if sys.stdout.isatty():
        return f"\x1b[32m{text}\x1b[0m"
    return text


def build_and_report(
    config: AndroidConfig,
    env: AndroidEnv,
    noise_level: NoiseLevel,
    profile: Profile,
    targets: Sequence[Target],
    split_per_abi: bool,
) -> list[Path]:
    """Build AAB(s), telling the user what is built and where it went."""
    print(
        "Building{} AAB{} for {} ...\n".format(
            "" if split_per_abi else " universal",
            "(s)" if split_per_abi else "",
            ", ".join(t.triple.split("-")[0] for t in targets),
        )
    )
    outputs = build(config, env, noise_level, profile, targets, split_per_abi)
    print("\nFinished building AAB(s):")
    for path in outputs:
        print(f"    {_green(str(path))}")
    return outputs