"""Talking to connected devices through `adb`."""

from __future__ import annotations

import os
import re
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .env import AndroidEnv

UNAUTHORIZED_MARKER = "error: device unauthorized"
_DEVICE_RE = re.compile(r"^(\S{6,100})\tdevice\b", re.MULTILINE)
_NAME_RE = re.compile(r"\bname: (?P<name>.*)")


class RunCheckedError(Exception):
    """An `adb` invocation did not produce usable output."""

    def __init__(self, message: str, *, unauthorized: bool = False):
        super().__init__(message)
        self.unauthorized = unauthorized


class DeviceNameError(Exception):
    """The human-readable name of a device could not be determined."""


class GetPropError(Exception):
    """A system property could not be read from a device."""

    def __init__(self, message: str, prop: str | None = None):
        super().__init__(message)
        self.prop = prop


def adb_command(env: AndroidEnv, serial_no: str, *args: str) -> list[str]:
    """Command line running `adb` against the device with the given serial."""
    return [str(env.platform_tools_path() / "adb"), "-s", serial_no, *args]


def _run_captured(env: AndroidEnv, argv: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        argv,
        env={**os.environ, **env.explicit_env()},
        capture_output=True,
        check=True,
    )


def check_authorized(result: subprocess.CompletedProcess) -> str:
    """Trimmed stdout of an `adb` run, or an error if the device refused us."""
    if result.returncode != 0:
        stderr = result.stderr
        if isinstance(stderr, bytes):
            try:
                stderr = stderr.decode("utf-8")
            except UnicodeDecodeError:
                stderr = None
        if stderr and UNAUTHORIZED_MARKER in stderr:
            raise RunCheckedError(
                "This device doesn't yet trust this computer. On the device, you "
                'should see a prompt like "Allow USB debugging?". Pressing "Allow" '
                "should fix this.",
                unauthorized=True,
            )
    stdout = result.stdout if result.stdout is not None else b""
    if isinstance(stdout, bytes):
        try:
            stdout = stdout.decode("utf-8")
        except UnicodeDecodeError as err:
            raise RunCheckedError(str(err)) from err
    return stdout.strip()


def parse_device_serials(output: str) -> list[str]:
    """Serial numbers of the ready devices listed in `adb devices` output."""
    return [match.group(1) for match in _DEVICE_RE.finditer(output)]


def parse_device_name(stdout: str) -> str:
    """The device name from `dumpsys bluetooth_manager` output."""
    match = _NAME_RE.search(stdout)
    if match is None:
        raise DeviceNameError("Name regex didn't match anything.")
    return match.group("name")


def device_name(env: AndroidEnv, serial_no: str) -> str:
    """A friendly name for the device: the AVD name or its Bluetooth name."""
    emulator = serial_no.startswith("emulator")
    args = ("emu", "avd", "name") if emulator else ("shell", "dumpsys", "bluetooth_manager")
    try:
        result = _run_captured(env, adb_command(env, serial_no, *args))
    except (OSError, subprocess.CalledProcessError) as err:
        raise DeviceNameError(f"IO error: {err}") from err
    try:
        stdout = check_authorized(result)
    except RunCheckedError as err:
        raise DeviceNameError(f"Failed to run `adb {' '.join(args)}`: {err}") from err
    if emulator:
        return stdout.split("\n", 1)[0].strip()
    return parse_device_name(stdout)


def get_prop(env: AndroidEnv, serial_no: str, prop: str) -> str:
    """Value of the system property `prop` on the device."""
    argv = adb_command(env, serial_no, "shell", "getprop", prop)
    try:
        result = _run_captured(env, argv)
    except (OSError, subprocess.CalledProcessError) as err:
        raise GetPropError(f"IO error: {err}") from err
    try:
        return check_authorized(result)
    except RunCheckedError as err:
        raise GetPropError(
            f"Failed to run `adb shell getprop {prop}`: {err}", prop=prop
        ) from err