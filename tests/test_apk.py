import os
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from droidkit.apk import ApkError, apks_paths, build, build_and_report, gradle_args, last_modified
from droidkit.common import NoiseLevel, Profile
from droidkit.config import AndroidConfig, AppInfo
from droidkit.env import AndroidEnv
from droidkit.ndk import NdkEnv
from droidkit.target import Target


@pytest.fixture
def config(tmp_path):
    app = AppInfo(name="demo-app", root_dir=tmp_path, reverse_domain="com.example")
    return AndroidConfig.from_raw(app)


@pytest.fixture
def env(tmp_path):
    return AndroidEnv(
        base={"PATH": "/usr/bin"},
        android_home=tmp_path / "sdk",
        ndk=NdkEnv(tmp_path / "ndk"),
    )


def _touch(path: Path, mtime: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"apk")
    os.utime(path, (mtime, mtime))
    return path


def test_apks_paths_debug(config):
    assert apks_paths(config, Profile.DEBUG, "arm64") == [
        config.project_dir() / "app/build/outputs/apk/arm64/debug/app-arm64-debug.apk"
    ]


def test_apks_paths_release_has_one_per_suffix(config):
    paths = apks_paths(config, Profile.RELEASE, "universal")
    assert len(paths) == len(Profile.RELEASE.suffixes())
    assert all(p.suffix == ".apk" for p in paths)
    assert {p.stem for p in paths} == {
        f"app-universal-{s}" for s in Profile.RELEASE.suffixes()
    }


def test_last_modified_picks_newest(tmp_path):
    old = _touch(tmp_path / "a.apk", 1_000)
    new = _touch(tmp_path / "b.apk", 2_000)
    assert last_modified([old, new]) == new
    assert last_modified([new, old]) == new


def test_last_modified_prefers_existing(tmp_path):
    existing = _touch(tmp_path / "b.apk", 1_000)
    assert last_modified([tmp_path / "missing.apk", existing]) == existing


def test_last_modified_empty():
    with pytest.raises(ValueError):
        last_modified([])


def test_gradle_args_universal_without_targets():
    assert gradle_args(Profile.RELEASE, [], False) == ["assembleUniversalRelease"]


def test_gradle_args_universal_with_targets():
    aarch = Target.for_name("aarch64")
    armv7 = Target.for_name("armv7")
    args = gradle_args(Profile.RELEASE, [aarch, armv7], False)
    assert args[0] == "assembleUniversalRelease"
    assert args[1:] == [
        f"-PabiList={aarch.abi},{armv7.abi}",
        f"-ParchList={aarch.arch},{armv7.arch}",
        "-PtargetList=aarch64,armv7",
    ]


def test_gradle_args_split():
    args = gradle_args(Profile.DEBUG, [Target.for_name("aarch64")], True)
    assert args == ["assembleArm64Debug"]


def test_build_runs_gradle_and_returns_newest(config, env):
    older, newer = apks_paths(config, Profile.RELEASE, "universal")
    _touch(older, 1_000)
    _touch(newer, 5_000)
    with mock.patch("subprocess.run") as run:
        outputs = build(config, env, NoiseLevel.LOUD_AND_PROUD, Profile.RELEASE, [], False)
    assert outputs == [newer]
    argv = run.call_args.args[0]
    assert Path(argv[0]).parent == config.project_dir()
    assert argv[1:] == ["assembleUniversalRelease", "--info"]
    assert run.call_args.kwargs["env"]["ANDROID_HOME"] == str(env.android_home)


def test_build_split_returns_one_per_target(config, env):
    targets = [Target.for_name("aarch64"), Target.for_name("x86_64")]
    with mock.patch("subprocess.run"):
        outputs = build(config, env, NoiseLevel.POLITE, Profile.DEBUG, targets, True)
    assert outputs == [apks_paths(config, Profile.DEBUG, t.arch)[0] for t in targets]


def test_build_removes_broken_links(config, env, tmp_path):
    abi_dir = config.project_dir() / "app/src/main/jniLibs" / Target.for_name("i686").abi
    abi_dir.mkdir(parents=True)
    link = abi_dir / "libgone.so"
    os.symlink(tmp_path / "nowhere.so", link)
    with mock.patch("subprocess.run"):
        build(config, env, NoiseLevel.POLITE, Profile.DEBUG, [], False)
    assert not link.is_symlink()


def test_build_missing_gradlew(config, env):
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("gradlew")):
        with pytest.raises(ApkError, match="Failed to assemble APK"):
            build(config, env, NoiseLevel.POLITE, Profile.DEBUG, [], False)


def test_build_gradle_failure(config, env):
    failure = subprocess.CalledProcessError(1, ["gradlew"])
    with mock.patch("subprocess.run", side_effect=failure):
        with pytest.raises(ApkError):
            build(config, env, NoiseLevel.POLITE, Profile.DEBUG, [], False)


def test_build_and_report_prints_outputs(config, env, capsys):
    targets = [Target.for_name("armv7")]
    with mock.patch("subprocess.run"):
        outputs = build_and_report(
            config, env, NoiseLevel.POLITE, Profile.DEBUG, targets, False
        )
    out = capsys.readouterr().out
    assert "Building universal APK for armv7 ..." in out
    assert "Finished building APK(s):" in out
    assert str(outputs[0]) in out