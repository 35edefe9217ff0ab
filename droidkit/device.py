"""Connected Android devices: discovery, deployment and debugging."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path

from . import aab, apk, bundletool
from .adb import (
    RunCheckedError,
    adb_command,
    check_authorized,
    device_name,
    get_prop,
    parse_device_serials,
)
from .common import FilterLevel, NoiseLevel, Profile
from .config import AndroidConfig
from .env import AndroidEnv
from .jnilibs import jnilibs_path
from .target import Target

log = logging.getLogger(__name__)

_NDK_STACK = "ndk-stack.cmd" if sys.platform == "win32" else "ndk-stack"
_POLL_INTERVAL = 2.0


class DeviceListError(Exception):
    """Connected devices could not be detected."""

    def __init__(self, message: str, *, abi: str | None = None):
        super().__init__(message)
        self.abi = abi


class ApksBuildError(Exception):
    """An APK set could not be built from an app bundle."""


class ApkInstallError(Exception):
    """An APK could not be installed on the device."""


class RunError(Exception):
    """Deploying and starting the app failed; the cause is chained."""


class StacktraceError(Exception):
    """The device's stack trace could not be shown."""


def _tool_env(env: AndroidEnv) -> dict[str, str]:
    return {**os.environ, **env.explicit_env()}


def device_list(env: AndroidEnv) -> list[Device]:
    """Ready devices reported by `adb devices`, sorted and without duplicates."""
    argv = [str(env.platform_tools_path() / "adb"), "devices"]
    try:
        result = subprocess.run(argv, env=_tool_env(env), capture_output=True)
    except OSError as err:
        raise DeviceListError(f"Failed to detect connected Android devices: {err}") from err
    try:
        raw_list = check_authorized(result)
    except RunCheckedError as err:
        raise DeviceListError(f"Failed to run `adb devices`: {err}") from err

    devices = set()
    for serial_no in parse_device_serials(raw_list):
        try:
            model = get_prop(env, serial_no, "ro.product.model")
        except Exception as err:
            raise DeviceListError(str(err)) from err
        try:
            name = device_name(env, serial_no)
        except Exception:
            name = model
        try:
            abi = get_prop(env, serial_no, "ro.product.cpu.abi")
        except Exception as err:
            raise DeviceListError(str(err)) from err
        target = Target.for_abi(abi)
        if target is None:
            raise DeviceListError(f"{abi!r} isn't a valid target ABI.", abi=abi)
        devices.add(Device(serial_no, name, model, target))
    return sorted(devices)


@dataclass(frozen=True, order=True)
class Device:
    """An Android device reachable through `adb`."""

    serial_no: str
    name: str
    model: str
    target: Target

    def __str__(self) -> str:
        if self.model != self.name:
            return f"{self.name} ({self.model})"
        return self.name

    @property
    def is_emulator(self) -> bool:
        return self.serial_no.startswith("emulator")

    def _adb(self, env: AndroidEnv, *args: str) -> list[str]:
        return adb_command(env, self.serial_no, *args)

    def activity_component(self, config: AndroidConfig, activity: str) -> str:
        """The `package/activity` component name that `am start` launches."""
        return f"{self._package(config)}/{activity}"

    def logcat_filter(
        self,
        config: AndroidConfig,
        noise_level: NoiseLevel,
        filter_level: FilterLevel | None = None,
    ) -> str:
        """The logcat filter spec for the app's tag."""
        level = filter_level or FilterLevel.for_noise_level(noise_level)
        return f"{config.app.name}:{level.logcat()}"

    @staticmethod
    def _package(config: AndroidConfig) -> str:
        return f"{config.app.reverse_domain}.{config.app.name_snake()}"

    def _wait_device_boot(self, env: AndroidEnv) -> None:
        argv = self._adb(env, "shell", "getprop", "init.svc.bootanim")
        while True:
            try:
                result = subprocess.run(argv, env=_tool_env(env), capture_output=True)
            except OSError:
                time.sleep(_POLL_INTERVAL)
                continue
            if result.returncode != 0:
                return
            if result.stdout.decode("utf-8", errors="replace").strip() == "stopped":
                return
            time.sleep(_POLL_INTERVAL)

    def _install_apk(self, config: AndroidConfig, env: AndroidEnv, profile: Profile) -> None:
        apk_path = apk.last_modified(apk.apks_paths(config, profile, self.target.arch))
        try:
            subprocess.run(
                self._adb(env, "install", "-r", str(apk_path)),
                env=_tool_env(env),
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as err:
            raise ApkInstallError(f"Failed to install APK: {err}") from err

    def _build_apks_from_aab(self, config: AndroidConfig, profile: Profile) -> None:
        flavor = self.target.arch
        # The first candidate carries the plain suffix, which is the name we choose here.
        apks_path = apk.apks_paths(config, profile, flavor)[0]
        aab_path = aab.aab_path(config, profile, flavor)
        argv = bundletool.bundletool_command(
            None,
            "build-apks",
            f"--bundle={aab_path}",
            f"--output={apks_path}",
            "--connected-device",
        )
        try:
            subprocess.run(argv, check=True)
        except (OSError, subprocess.CalledProcessError) as err:
            raise ApksBuildError(f"Failed to build APKS from AAB: {err}") from err

    def _install_apk_from_aab(self, config: AndroidConfig, profile: Profile) -> None:
        apks_path = apk.last_modified(apk.apks_paths(config, profile, self.target.arch))
        argv = bundletool.bundletool_command(None, "install-apks", f"--apks={apks_path}")
        try:
            subprocess.run(argv, check=True)
        except (OSError, subprocess.CalledProcessError) as err:
            raise ApkInstallError(f"Failed to install APK from AAB: {err}") from err

    def _wake_screen(self, env: AndroidEnv) -> None:
        subprocess.run(
            self._adb(env, "shell", "input", "keyevent", "KEYCODE_WAKEUP"),
            env=_tool_env(env),
            check=True,
        )

    def _wait_for_pid(self, config: AndroidConfig, env: AndroidEnv) -> str:
        argv = [
            str(env.platform_tools_path() / "adb"),
            "shell",
            "pidof",
            "-s",
            self._package(config),
        ]
        while True:
            result = subprocess.run(argv, env=_tool_env(env), capture_output=True)
            if result.returncode == 0:
                return result.stdout.decode("utf-8", errors="replace").strip()
            time.sleep(_POLL_INTERVAL)

    def _deploy(
        self,
        config: AndroidConfig,
        env: AndroidEnv,
        noise_level: NoiseLevel,
        profile: Profile,
        build_app_bundle: bool,
        reinstall_deps: bool,
    ) -> None:
        if build_app_bundle:
            bundletool.install(None, reinstall_deps)
            aab.build(config, env, noise_level, profile, [self.target], False)
            self._build_apks_from_aab(config, profile)
            if self.is_emulator:
                self._wait_device_boot(env)
            self._install_apk_from_aab(config, profile)
        else:
            apk.build(config, env, noise_level, profile, [self.target], True)
            if self.is_emulator:
                self._wait_device_boot(env)
            self._install_apk(config, env, profile)

    def run(
        self,
        config: AndroidConfig,
        env: AndroidEnv,
        noise_level: NoiseLevel,
        profile: Profile,
        filter_level: FilterLevel | None,
        build_app_bundle: bool,
        reinstall_deps: bool,
        activity: str,
    ) -> subprocess.Popen:
        """Build, install and launch the app, then follow its log output."""
        try:
            self._deploy(config, env, noise_level, profile, build_app_bundle, reinstall_deps)
        except (
            apk.ApkError,
            aab.AabError,
            bundletool.BundletoolInstallError,
            ApksBuildError,
            ApkInstallError,
        ) as err:
            raise RunError(str(err)) from err

        try:
            subprocess.run(
                self._adb(env, "shell", "am", "start", "-n",
                          self.activity_component(config, activity)),
                env=_tool_env(env),
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as err:
            raise RunError(f"IO error: {err}") from err

        try:
            self._wake_screen(env)
        except (OSError, subprocess.CalledProcessError) as err:
            log.debug("failed to wake device screen: %s", err)

        log_filter = self.logcat_filter(config, noise_level, filter_level)
        try:
            pid = self._wait_for_pid(config, env)
        except OSError as err:
            raise RunError(f"IO error: {err}") from err

        argv = [str(env.platform_tools_path() / "adb"), "logcat", "-v", "color", "-s", log_filter]
        if pid:
            argv += ["--pid", pid]
        argv += config.logcat_filter_specs
        try:
            return subprocess.Popen(argv, env=_tool_env(env))
        except OSError as err:
            raise RunError(f"IO error: {err}") from err

    def stacktrace(self, config: AndroidConfig, env: AndroidEnv) -> None:
        """Print the device log symbolized through `ndk-stack`."""
        # ndk-stack mishandles spaces in arguments, so the path is kept relative.
        jnilib_path = config.app.unprefix_path(jnilibs_path(config, self.target.abi))
        logcat_argv = self._adb(env, "logcat", "-d", "-sym", str(jnilib_path))
        stack_argv = [str(env.ndk.home / _NDK_STACK)]
        stack_env = {**_tool_env(env), "PATH": f"{env.ndk.home}{os.pathsep}{env.path()}"}
        try:
            logcat = subprocess.Popen(
                logcat_argv,
                env=_tool_env(env),
                stdout=subprocess.PIPE,
                cwd=config.app.root_dir,
            )
            try:
                stack = subprocess.Popen(
                    stack_argv, env=stack_env, stdin=logcat.stdout, cwd=config.app.root_dir
                )
            finally:
                if logcat.stdout is not None:
                    logcat.stdout.close()
            stack_code = stack.wait()
            logcat_code = logcat.wait()
        except OSError as err:
            raise StacktraceError(f"IO error: {err}") from err
        if stack_code != 0 or logcat_code != 0:
            print("  -- no stacktrace --")