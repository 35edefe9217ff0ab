"""Android virtual devices and the emulator that runs them."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .env import AndroidEnv


class AvdListError(Exception):
    """The list of virtual devices could not be obtained."""


def _emulator_binary(env: AndroidEnv) -> str:
    return str(env.android_home / "emulator" / "emulator")


@dataclass(frozen=True, order=True)
class Emulator:
    """A named Android virtual device."""

    name: str

    def __str__(self) -> str:
        return self.name

    def command(self, env: AndroidEnv) -> list[str]:
        """Command line that boots this virtual device."""
        return [_emulator_binary(env), "-avd", self.name]

    def start(self, env: AndroidEnv) -> subprocess.Popen:
        """Boot the device and return the running emulator process."""
        return subprocess.Popen(self.command(env), env={**os.environ, **env.explicit_env()})

    def start_detached(self, env: AndroidEnv) -> None:
        """Boot the device in its own session without waiting for it."""
        subprocess.Popen(
            self.command(env),
            env={**os.environ, **env.explicit_env()},
            start_new_session=True,
        )


def parse_avd_list(output: str) -> list[Emulator]:
    """Emulators named in `emulator -list-avds` output, sorted and unique."""
    return sorted({Emulator(line.strip()) for line in output.split("\n") if line})


def avd_list(env: AndroidEnv) -> list[Emulator]:
    """All virtual devices known to the SDK's emulator."""
    try:
        result = subprocess.run(
            [_emulator_binary(env), "-list-avds"],
            env={**os.environ, **env.explicit_env()},
            capture_output=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as err:
        raise AvdListError(f"Failed to run `adb devices`: {err}") from err
    output = result.stdout.decode("utf-8", errors="replace").rstrip("\n")
    return parse_avd_list(output)