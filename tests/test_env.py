import pytest

from droidkit.env import AndroidEnv, AndroidEnvError
from droidkit.source_props import SourcePropsError


def _ndk(root, revision="25.1.8937393"):
    home = root / "ndk"
    home.mkdir()
    (home / "source.properties").write_text(f"Pkg.Revision = {revision}\n")
    return home


@pytest.fixture
def environ(tmp_path):
    sdk = tmp_path / "sdk"
    sdk.mkdir()
    return {
        "PATH": "/usr/bin",
        "HOME": str(tmp_path),
        "ANDROID_HOME": str(sdk),
        "NDK_HOME": str(_ndk(tmp_path)),
    }


def test_from_environ_locates_sdk_and_ndk(environ):
    env = AndroidEnv.from_environ(environ)
    assert str(env.android_home) == environ["ANDROID_HOME"]
    assert str(env.ndk.home) == environ["NDK_HOME"]
    assert env.path() == environ["PATH"]


def test_platform_tools_path(environ):
    env = AndroidEnv.from_environ(environ)
    assert env.platform_tools_path().parent == env.android_home
    assert env.platform_tools_path().name == "platform-tools"


def test_explicit_env_contains_homes(environ):
    env = AndroidEnv.from_environ(environ)
    envs = env.explicit_env()
    assert envs["ANDROID_HOME"] == environ["ANDROID_HOME"]
    assert envs["NDK_HOME"] == environ["NDK_HOME"]
    assert envs["PATH"] == environ["PATH"]
    assert envs["HOME"] == environ["HOME"]


def test_extra_vars_are_included(environ):
    env = AndroidEnv.from_environ(environ)
    env.extra_vars["CUSTOM"] = "value"
    assert env.explicit_env()["CUSTOM"] == "value"


def test_missing_android_home_is_sdk_issue(environ):
    del environ["ANDROID_HOME"]
    with pytest.raises(AndroidEnvError, match="ANDROID_HOME") as info:
        AndroidEnv.from_environ(environ)
    assert info.value.sdk_or_ndk_issue()


def test_android_home_not_a_dir(environ, tmp_path):
    environ["ANDROID_HOME"] = str(tmp_path / "nowhere")
    with pytest.raises(AndroidEnvError, match="doesn't point to an existing directory"):
        AndroidEnv.from_environ(environ)


def test_falls_back_to_sdk_root(environ, tmp_path):
    sdk_root = tmp_path / "sdk-root"
    sdk_root.mkdir()
    del environ["ANDROID_HOME"]
    environ["ANDROID_SDK_ROOT"] = str(sdk_root)
    env = AndroidEnv.from_environ(environ)
    assert env.android_home == sdk_root


def test_missing_path_is_core_issue(environ):
    del environ["PATH"]
    with pytest.raises(AndroidEnvError) as info:
        AndroidEnv.from_environ(environ)
    assert not info.value.sdk_or_ndk_issue()


def test_ndk_too_old(environ, tmp_path):
    old = tmp_path / "old"
    old.mkdir()
    environ["NDK_HOME"] = str(_ndk(old, "18.1.5063045"))
    with pytest.raises(AndroidEnvError, match="At least NDK r19") as info:
        AndroidEnv.from_environ(environ)
    assert info.value.sdk_or_ndk_issue()


def test_sdk_version(environ):
    env = AndroidEnv.from_environ(environ)
    tools = env.android_home / "tools"
    tools.mkdir()
    (tools / "source.properties").write_text("Pkg.Revision=26.1.1\n")
    revision = env.sdk_version()
    assert str(revision) == "26.1.1"


def test_sdk_version_missing_file(environ):
    env = AndroidEnv.from_environ(environ)
    with pytest.raises(SourcePropsError):
        env.sdk_version()