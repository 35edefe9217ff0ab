"""Shared names, build profiles and verbosity levels."""

from __future__ import annotations

import enum

NAME = "android"
DEFAULT_ACTIVITY = "android.app.NativeActivity"
DEFAULT_THEME_PARENT = "android:Theme.Material.Light.DarkActionBar"


class Profile(enum.Enum):
    """Build profile; the value is the profile's lower-case name."""

    DEBUG = "debug"
    RELEASE = "release"

    def pascal_case(self) -> str:
        """Name of the profile with a leading capital, as gradle spells it."""
        return self.value.capitalize()

    def suffixes(self) -> list[str]:
        """File name suffixes gradle may give an APK built with this profile."""
        if self is Profile.DEBUG:
            return ["debug"]
        return ["release", "release-unsigned"]

    def release(self) -> bool:
        return self is Profile.RELEASE


class NoiseLevel(enum.Enum):
    """How much output the user asked for."""

    POLITE = "polite"
    LOUD_AND_PROUD = "loud-and-proud"
    FRANKLY_QUITE_PEDANTIC = "frankly-quite-pedantic"

    def pedantic(self) -> bool:
        return self is NoiseLevel.FRANKLY_QUITE_PEDANTIC

    def gradle_flag(self) -> str:
        """The gradle log-level flag matching this noise level."""
        return {
            NoiseLevel.POLITE: "--warn",
            NoiseLevel.LOUD_AND_PROUD: "--info",
            NoiseLevel.FRANKLY_QUITE_PEDANTIC: "--debug",
        }[self]


class FilterLevel(enum.Enum):
    """Logcat priority filter; the value is logcat's priority letter."""

    ERROR = "E"
    WARN = "W"
    INFO = "I"
    DEBUG = "D"
    VERBOSE = "V"

    def logcat(self) -> str:
        return self.value

    @classmethod
    def for_noise_level(cls, noise_level: NoiseLevel) -> FilterLevel:
        """The filter level used when none is given explicitly."""
        return {
            NoiseLevel.POLITE: cls.WARN,
            NoiseLevel.LOUD_AND_PROUD: cls.INFO,
            NoiseLevel.FRANKLY_QUITE_PEDANTIC: cls.VERBOSE,
        }[noise_level]