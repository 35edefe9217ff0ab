"""Android project configuration and per-project metadata."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .common import NAME, Profile

log = logging.getLogger(__name__)

DEFAULT_MIN_SDK_VERSION = 24
DEFAULT_VULKAN_VALIDATION = True
DEFAULT_PROJECT_DIR = "gen/android"


def _check(value: Any, key: str, kind: type | tuple[type, ...]) -> Any:
    if value is not None and not isinstance(value, kind):
        raise ValueError(f"`{key}` has the wrong type: {value!r}")
    return value


def _opt_bool(data: Mapping[str, Any], key: str) -> bool | None:
    return _check(data.get(key), key, bool)


def _opt_str(data: Mapping[str, Any], key: str) -> str | None:
    return _check(data.get(key), key, str)


def _opt_str_list(data: Mapping[str, Any], key: str) -> list[str] | None:
    value = _check(data.get(key), key, list)
    if value is not None and not all(isinstance(item, str) for item in value):
        raise ValueError(f"`{key}` must be a list of strings: {value!r}")
    return value


@dataclass(frozen=True)
class AssetPackInfo:
    name: str
    delivery_type: str

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> AssetPackInfo:
        if not isinstance(data, Mapping):
            raise ValueError(f"asset pack must be a table: {data!r}")
        try:
            name, delivery_type = data["name"], data["delivery_type"]
        except KeyError as err:
            raise ValueError(f"asset pack is missing `{err.args[0]}`") from None
        return cls(_check(name, "name", str), _check(delivery_type, "delivery_type", str))


@dataclass
class AndroidMetadata:
    """Android-specific settings from the project's manifest metadata."""

    supported: bool = True
    no_default_features: bool = False
    cargo_args: list[str] | None = None
    features: list[str] | None = None
    app_sources: list[str] = field(default_factory=list)
    app_plugins: list[str] | None = None
    project_dependencies: list[str] | None = None
    app_dependencies: list[str] | None = None
    app_dependencies_platform: list[str] | None = None
    asset_packs: list[AssetPackInfo] | None = None
    app_activity_name: str | None = None
    app_permissions: list[str] | None = None
    app_theme_parent: str | None = None
    env_vars: dict[str, str] | None = None
    vulkan_validation: bool | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AndroidMetadata:
        """Build metadata from a kebab-case table; unknown keys are ignored."""
        supported = _opt_bool(data, "supported")
        no_default_features = _opt_bool(data, "no-default-features")
        env_vars = _check(data.get("env-vars"), "env-vars", dict)
        if env_vars is not None and not all(
            isinstance(k, str) and isinstance(v, str) for k, v in env_vars.items()
        ):
            raise ValueError(f"`env-vars` must map strings to strings: {env_vars!r}")
        packs = _check(data.get("asset-packs"), "asset-packs", list)
        return cls(
            supported=True if supported is None else supported,
            no_default_features=bool(no_default_features),
            cargo_args=_opt_str_list(data, "cargo-args"),
            features=_opt_str_list(data, "features"),
            app_sources=_opt_str_list(data, "app-sources") or [],
            app_plugins=_opt_str_list(data, "app-plugins"),
            project_dependencies=_opt_str_list(data, "project-dependencies"),
            app_dependencies=_opt_str_list(data, "app-dependencies"),
            app_dependencies_platform=_opt_str_list(data, "app-dependencies-platform"),
            asset_packs=None if packs is None else [AssetPackInfo._from_dict(p) for p in packs],
            app_activity_name=_opt_str(data, "app-activity-name"),
            app_permissions=_opt_str_list(data, "app-permissions"),
            app_theme_parent=_opt_str(data, "app-theme-parent"),
            env_vars=None if env_vars is None else dict(env_vars),
            vulkan_validation=_opt_bool(data, "vulkan-validation"),
        )


class ProjectDirInvalid(ValueError):
    """`android.project-dir` names a directory that cannot be used."""

    class Reason(enum.Enum):
        NORMALIZATION_FAILED = "normalization-failed"
        OUTSIDE_OF_APP_ROOT = "outside-of-app-root"
        CONTAINS_SPACES = "contains-spaces"

    def __init__(self, reason: Reason, project_dir: str, detail: str):
        super().__init__(f"android.project-dir invalid: {detail}")
        self.reason = reason
        self.project_dir = project_dir


def under_root(path: str | Path, root: str | Path) -> bool:
    """Whether `path`, taken relative to `root`, stays inside `root`."""
    if "\0" in str(path) or "\0" in str(root):
        raise ValueError("path contains a null byte")
    root_abs = Path(os.path.normpath(os.path.abspath(root)))
    candidate = Path(os.path.normpath(os.path.join(root_abs, path)))
    return candidate == root_abs or root_abs in candidate.parents


@dataclass
class AppInfo:
    """The parts of the app configuration the Android tooling relies on."""

    name: str
    root_dir: Path
    reverse_domain: str
    lib_name: str | None = None
    asset_dir_name: str = "assets"

    def __post_init__(self) -> None:
        self.root_dir = Path(self.root_dir)
        if self.lib_name is None:
            self.lib_name = self.name_snake()

    def name_snake(self) -> str:
        return self.name.replace("-", "_")

    def prefix_path(self, path: str | Path) -> Path:
        return self.root_dir / path

    def unprefix_path(self, path: str | Path) -> Path:
        """`path` relative to the app root; ValueError if it lies outside."""
        return Path(path).relative_to(self.root_dir)

    @property
    def asset_dir(self) -> Path:
        return self.prefix_path(self.asset_dir_name)

    @property
    def manifest_path(self) -> Path:
        return self.prefix_path("Cargo.toml")

    def target_dir(self, triple: str, profile: Profile) -> Path:
        return self.prefix_path("target") / triple / profile.value


@dataclass
class RawConfig:
    """The `android` table of the project config as written by the user."""

    min_sdk_version: int | None = None
    project_dir: str | None = None
    no_default_features: bool | None = None
    features: list[str] | None = None
    logcat_filter_specs: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RawConfig:
        min_sdk = data.get("min-sdk-version")
        if min_sdk is not None and (
            isinstance(min_sdk, bool) or not isinstance(min_sdk, int) or min_sdk < 0
        ):
            raise ValueError(f"`min-sdk-version` must be a non-negative integer: {min_sdk!r}")
        return cls(
            min_sdk_version=min_sdk,
            project_dir=_opt_str(data, "project-dir"),
            no_default_features=_opt_bool(data, "no-default-features"),
            features=_opt_str_list(data, "features"),
            logcat_filter_specs=_opt_str_list(data, "logcat-filter-specs") or [],
        )


@dataclass
class AndroidConfig:
    """Resolved Android configuration for one app."""

    app: AppInfo
    min_sdk_version: int
    project_dir_rel: Path
    logcat_filter_specs: list[str]

    @classmethod
    def from_raw(cls, app: AppInfo, raw: RawConfig | None = None) -> AndroidConfig:
        raw = raw if raw is not None else RawConfig()
        min_sdk_version = (
            raw.min_sdk_version if raw.min_sdk_version is not None else DEFAULT_MIN_SDK_VERSION
        )
        project_dir = raw.project_dir
        if project_dir is None:
            project_dir = DEFAULT_PROJECT_DIR
        else:
            if project_dir == DEFAULT_PROJECT_DIR:
                log.warning(
                    "`%s.project-dir` is set to the default value; "
                    "you can remove it from your config",
                    NAME,
                )
            try:
                inside = under_root(project_dir, app.root_dir)
            except ValueError as err:
                raise ProjectDirInvalid(
                    ProjectDirInvalid.Reason.NORMALIZATION_FAILED,
                    project_dir,
                    f'"{project_dir}" couldn\'t be normalized: {err}',
                ) from err
            if not inside:
                raise ProjectDirInvalid(
                    ProjectDirInvalid.Reason.OUTSIDE_OF_APP_ROOT,
                    project_dir,
                    f'"{project_dir}" is outside of the app root "{app.root_dir}"',
                )
            if " " in project_dir:
                raise ProjectDirInvalid(
                    ProjectDirInvalid.Reason.CONTAINS_SPACES,
                    project_dir,
                    f'"{project_dir}" contains spaces, '
                    "which the NDK is remarkably intolerant of",
                )
        return cls(
            app=app,
            min_sdk_version=min_sdk_version,
            project_dir_rel=Path(project_dir),
            logcat_filter_specs=list(raw.logcat_filter_specs),
        )

    def so_name(self) -> str:
        return f"lib{self.app.lib_name}.so"

    def project_dir(self) -> Path:
        return self.app.prefix_path(self.project_dir_rel)

    def project_dir_exists(self) -> bool:
        return self.project_dir().is_dir()