import pytest

from droidkit.common import FilterLevel, NoiseLevel, Profile


def test_debug_pascal_case():
    assert Profile.DEBUG.pascal_case() == "Debug"


def test_release_pascal_case():
    assert Profile.RELEASE.pascal_case() == "Release"


def test_debug_suffixes():
    assert Profile.DEBUG.suffixes() == ["debug"]


def test_release_suffixes_prefer_signed_first():
    assert Profile.RELEASE.suffixes() == ["release", "release-unsigned"]


def test_release_flag():
    assert Profile.RELEASE.release() is True
    assert Profile.DEBUG.release() is False


def test_pedantic_only_for_highest_level():
    assert NoiseLevel.FRANKLY_QUITE_PEDANTIC.pedantic() is True
    assert NoiseLevel.LOUD_AND_PROUD.pedantic() is False
    assert NoiseLevel.POLITE.pedantic() is False


@pytest.mark.parametrize(
    "level, flag",
    [
        (NoiseLevel.POLITE, "--warn"),
        (NoiseLevel.LOUD_AND_PROUD, "--info"),
        (NoiseLevel.FRANKLY_QUITE_PEDANTIC, "--debug"),
    ],
)
def test_gradle_flag(level, flag):
    assert level.gradle_flag() == flag


@pytest.mark.parametrize(
    "level, expected",
    [
        (NoiseLevel.POLITE, FilterLevel.WARN),
        (NoiseLevel.LOUD_AND_PROUD, FilterLevel.INFO),
        (NoiseLevel.FRANKLY_QUITE_PEDANTIC, FilterLevel.VERBOSE),
    ],
)
def test_filter_for_noise_level(level, expected):
    assert FilterLevel.for_noise_level(level) is expected


def test_warn_logcat_letter():
    assert FilterLevel.WARN.logcat() == "W"


def test_info_logcat_letter():
    assert FilterLevel.INFO.logcat() == "I"


def test_verbose_logcat_letter():
    assert FilterLevel.VERBOSE.logcat() == "V"