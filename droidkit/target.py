"""Android build targets and compiling the app's library for them."""

from __future__ import annotations

import enum
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import ClassVar, Mapping

from .common import NoiseLevel, Profile
from .config import AndroidConfig, AndroidMetadata
from .env import AndroidEnv
from .jnilibs import JniLibs, SymlinkLibError
from .ndk import Compiler, MissingToolError, NdkEnv, RequiredLibsError

log = logging.getLogger(__name__)

_LIBCXX_SHARED = "libc++_shared.so"
_ARCH_CAMEL = {"arm": "Arm", "arm64": "Arm64", "x86_64": "X86_64", "x86": "X86"}


class CargoMode(enum.Enum):
    CHECK = "check"
    BUILD = "build"

    def __str__(self) -> str:
        return self.value


@dataclass
class CargoTarget:
    """Per-target settings for the cargo configuration file."""

    linker: str | None = None
    rustflags: list[str] = field(default_factory=list)


class CompileLibError(Exception):
    """Compiling the app's library failed."""

    def __init__(self, message: str, mode: CargoMode | None = None):
        super().__init__(message)
        self.mode = mode


class SymlinkLibsError(Exception):
    """Linking built libraries into the project failed."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class BuildError(Exception):
    """Building for a target failed; the cause is chained."""


@dataclass(frozen=True, order=True)
class Target:
    """One Android ABI that the app's library can be built for."""

    triple: str
    clang_triple_override: str | None
    binutils_triple_override: str | None
    abi: str
    arch: str

    DEFAULT_KEY: ClassVar[str] = "aarch64"

    @classmethod
    def all(cls) -> Mapping[str, Target]:
        """All known targets, keyed by name in sorted order."""
        return _TARGETS

    @classmethod
    def name_list(cls) -> list[str]:
        return list(_TARGETS)

    @classmethod
    def for_name(cls, name: str) -> Target | None:
        return _TARGETS.get(name)

    @classmethod
    def for_abi(cls, abi: str) -> Target | None:
        return next((t for t in _TARGETS.values() if t.abi == abi), None)

    def clang_triple(self) -> str:
        return self.clang_triple_override or self.triple

    def binutils_triple(self) -> str:
        return self.binutils_triple_override or self.triple

    def arch_upper_camel_case(self) -> str:
        return _ARCH_CAMEL.get(self.arch, self.arch)

    def generate_cargo_config(self, config: AndroidConfig, env: AndroidEnv) -> CargoTarget:
        # Clang as linker is what gives the right library search paths.
        linker = env.ndk.compiler_path(
            Compiler.CLANG, self.clang_triple(), config.min_sdk_version
        )
        return CargoTarget(
            linker=str(linker),
            rustflags=[
                "-L",
                f'"{config.app.prefix_path(".cargo")}"',
                "-Clink-arg=-landroid",
                "-Clink-arg=-llog",
                "-Clink-arg=-lOpenSLES",
            ],
        )

    def cargo_command(
        self,
        config: AndroidConfig,
        metadata: AndroidMetadata,
        noise_level: NoiseLevel,
        force_color: bool,
        profile: Profile,
        mode: CargoMode,
    ) -> list[str]:
        """The cargo command line that compiles the library for this target."""
        argv = ["cargo", mode.value]
        if noise_level.pedantic():
            argv.append("-vv")
        argv += ["--package", config.app.name]
        argv += ["--manifest-path", str(config.app.manifest_path)]
        argv += ["--target", self.triple]
        if metadata.no_default_features:
            argv.append("--no-default-features")
        argv += metadata.cargo_args or []
        if metadata.features:
            argv += ["--features", ",".join(metadata.features)]
        if profile.release():
            argv.append("--release")
        # Gradle would strip colour otherwise, and Android Studio shows that in red.
        argv += ["--color", "always" if force_color else "auto"]
        return argv

    def _compile_env(self, config: AndroidConfig, env: AndroidEnv) -> dict[str, str]:
        min_sdk = config.min_sdk_version
        try:
            tools = {
                "TARGET_AR": env.ndk.ar_path(self.triple),
                "TARGET_CC": env.ndk.compiler_path(Compiler.CLANG, self.clang_triple(), min_sdk),
                "TARGET_CXX": env.ndk.compiler_path(
                    Compiler.CLANGXX, self.clang_triple(), min_sdk
                ),
            }
        except MissingToolError as err:
            raise CompileLibError(f"Failed to locate required build tool: {err}") from err
        variables = dict(os.environ)
        variables.update(env.explicit_env())
        variables["ANDROID_NATIVE_API_LEVEL"] = str(min_sdk)
        variables.update({key: str(path) for key, path in tools.items()})
        return variables

    def _compile_lib(
        self,
        config: AndroidConfig,
        metadata: AndroidMetadata,
        env: AndroidEnv,
        noise_level: NoiseLevel,
        force_color: bool,
        profile: Profile,
        mode: CargoMode,
    ) -> None:
        variables = self._compile_env(config, env)
        argv = self.cargo_command(config, metadata, noise_level, force_color, profile, mode)
        try:
            subprocess.run(argv, env=variables, check=True)
        except (OSError, subprocess.CalledProcessError) as err:
            raise CompileLibError(f"Failed to run `cargo {mode}`: {err}", mode) from err

    def check(
        self,
        config: AndroidConfig,
        metadata: AndroidMetadata,
        env: AndroidEnv,
        noise_level: NoiseLevel,
        force_color: bool,
    ) -> None:
        self._compile_lib(
            config, metadata, env, noise_level, force_color, Profile.DEBUG, CargoMode.CHECK
        )

    def symlink_libs(self, config: AndroidConfig, ndk: NdkEnv, profile: Profile) -> None:
        """Link the built library, and libc++ if it needs it, into jniLibs."""
        try:
            jnilibs = JniLibs.create(config, self.abi)
        except OSError as err:
            raise SymlinkLibsError(f'Failed to create "jniLibs" directory: {err}') from err
        src = config.app.target_dir(self.triple, profile) / config.so_name()
        if not src.exists():
            raise SymlinkLibsError(
                f"Library artifact not found at {src}. Make sure your Cargo.toml file "
                'has a [lib] block with `crate-type = ["staticlib", "cdylib", "rlib"]`',
                src,
            )
        try:
            jnilibs.symlink_lib(src)
            needed = ndk.required_libs(src, self.binutils_triple())
        except (SymlinkLibError, RequiredLibsError) as err:
            raise SymlinkLibsError(str(err)) from err
        if _LIBCXX_SHARED not in needed:
            return
        log.info('lib %r requires "%s"', str(src), _LIBCXX_SHARED)
        try:
            cxx_shared = ndk.libcxx_shared_path(self)
        except MissingToolError as err:
            raise SymlinkLibsError(f'Failed to locate "{_LIBCXX_SHARED}": {err}') from err
        try:
            jnilibs.symlink_lib(cxx_shared)
        except SymlinkLibError as err:
            raise SymlinkLibsError(str(err)) from err

    def build(
        self,
        config: AndroidConfig,
        metadata: AndroidMetadata,
        env: AndroidEnv,
        noise_level: NoiseLevel,
        force_color: bool,
        profile: Profile,
    ) -> None:
        try:
            self._compile_lib(
                config, metadata, env, noise_level, force_color, profile, CargoMode.BUILD
            )
            self.symlink_libs(config, env.ndk, profile)
        except (CompileLibError, SymlinkLibsError) as err:
            raise BuildError(str(err)) from err


_TARGETS: Mapping[str, Target] = MappingProxyType(
    {
        "aarch64": Target("aarch64-linux-android", None, None, "arm64-v8a", "arm64"),
        "armv7": Target(
            "armv7-linux-androideabi",
            "armv7a-linux-androideabi",
            "arm-linux-androideabi",
            "armeabi-v7a",
            "arm",
        ),
        "i686": Target("i686-linux-android", None, None, "x86", "x86"),
        "x86_64": Target("x86_64-linux-android", None, None, "x86_64", "x86_64"),
    }
)