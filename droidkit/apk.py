"""Building APKs with the generated project's gradle wrapper."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .common import NoiseLevel, Profile
from .config import AndroidConfig
from .env import AndroidEnv
from .jnilibs import JniLibs, RemoveBrokenLinksError
from .target import Target

log = logging.getLogger(__name__)

_GRADLEW_MISSING = (
    "`gradlew` not found. Make sure you have the Android SDK installed and added to your PATH"
)


class ApkError(Exception):
    """Building an APK failed."""


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return float("-inf")


def last_modified(paths: Iterable[str | Path]) -> Path:
    """The most recently modified of `paths`; missing files count as oldest."""
    candidates = [Path(p) for p in paths]
    if not candidates:
        raise ValueError("no paths to choose from")
    return max(candidates, key=_mtime)


def apks_paths(config: AndroidConfig, profile: Profile, flavor: str) -> list[Path]:
    """Every path gradle may write the APK of this flavor and profile to."""
    return [
        config.project_dir()
        / f"app/build/outputs/apk/{flavor}/{profile.value}/app-{flavor}-{suffix}.apk"
        for suffix in profile.suffixes()
    ]


def _target_properties(targets: Sequence[Target]) -> list[str]:
    if not targets:
        return []
    return [
        "-PabiList=" + ",".join(t.abi for t in targets),
        "-ParchList=" + ",".join(t.arch for t in targets),
        "-PtargetList=" + ",".join(t.triple.split("-")[0] for t in targets),
    ]


def gradle_args(profile: Profile, targets: Sequence[Target], split_per_abi: bool) -> list[str]:
    """Gradle tasks and properties that assemble the requested APKs."""
    build_ty = profile.pascal_case()
    if split_per_abi:
        return [f"assemble{t.arch_upper_camel_case()}{build_ty}" for t in targets]
    return [f"assembleUniversal{build_ty}", *_target_properties(targets)]


def _gradlew(config: AndroidConfig) -> Path:
    name = "gradlew.bat" if sys.platform == "win32" else "gradlew"
    return config.project_dir() / name


def _run_gradle(
    config: AndroidConfig, env: AndroidEnv, args: list[str], noise_level: NoiseLevel
) -> None:
    argv = [str(_gradlew(config)), *args, noise_level.gradle_flag()]
    try:
        subprocess.run(
            argv,
            cwd=config.project_dir(),
            env={**os.environ, **env.explicit_env()},
            check=True,
        )
    except FileNotFoundError as err:
        log.error(_GRADLEW_MISSING)
        raise ApkError(f"Failed to assemble APK: {err}") from err
    except (OSError, subprocess.CalledProcessError) as err:
        raise ApkError(f"Failed to assemble APK: {err}") from err


def build(
    config: AndroidConfig,
    env: AndroidEnv,
    noise_level: NoiseLevel,
    profile: Profile,
    targets: Sequence[Target],
    split_per_abi: bool,
) -> list[Path]:
    """Build APK(s) and return the paths of the built files."""
    try:
        JniLibs.remove_broken_links(config, [t.abi for t in Target.all().values()])
    except RemoveBrokenLinksError as err:
        raise ApkError(str(err)) from err

    _run_gradle(config, env, gradle_args(profile, targets, split_per_abi), noise_level)

    if split_per_abi:
        return [last_modified(apks_paths(config, profile, t.arch)) for t in targets]
    return [last_modified(apks_paths(config, profile, "universal"))]


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
    """Build APK(s), telling the user what is built and where it went."""
    print(
        "Building{} APK{} for {} ...\n".format(
            "" if split_per_abi else " universal",
            "(s)" if split_per_abi else "",
            ", ".join(t.triple.split("-")[0] for t in targets),
        )
    )
    outputs = build(config, env, noise_level, profile, targets, split_per_abi)
    print("\nFinished building APK(s):")
    for path in outputs:
        print(f"    {_green(str(path))}")
    return outputs