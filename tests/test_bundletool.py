import io
import os
import urllib.error
from unittest import mock

import pytest

from droidkit.bundletool import (
    BUNDLETOOL_JAR,
    DOWNLOAD_BASE,
    BundletoolInstallError,
    BundletoolJar,
    bundletool_command,
    default_tools_dir,
    install,
)


def test_file_name_contains_version():
    assert BundletoolJar().file_name() == "bundletool-all-1.8.0.jar"


def test_installation_path_in_tools_dir(tmp_path):
    assert BundletoolJar("2.0.0").installation_path(tmp_path) == (
        tmp_path / "bundletool-all-2.0.0.jar"
    )


def test_download_url_names_release_and_file():
    url = BundletoolJar().download_url()
    assert url.startswith(DOWNLOAD_BASE)
    assert url.endswith("/1.8.0/bundletool-all-1.8.0.jar")


def test_default_tools_dir_under_cargo_home(tmp_path):
    with mock.patch.dict(os.environ, {"CARGO_HOME": str(tmp_path)}):
        assert tmp_path in default_tools_dir().parents


def test_command_runs_jar_with_java(tmp_path):
    with mock.patch("sys.platform", "linux"):
        argv = bundletool_command(tmp_path, "build-apks", "--connected-device")
    assert argv == [
        "java",
        "-jar",
        str(tmp_path / "bundletool-all-1.8.0.jar"),
        "build-apks",
        "--connected-device",
    ]


def test_command_on_macos_uses_installed_binary(tmp_path):
    with mock.patch("sys.platform", "darwin"):
        assert bundletool_command(tmp_path, "install-apks") == ["bundletool", "install-apks"]


def test_install_downloads_jar(tmp_path):
    tools = tmp_path / "tools"
    with mock.patch("sys.platform", "linux"), mock.patch(
        "urllib.request.urlopen", return_value=io.BytesIO(b"jar bytes")
    ) as urlopen:
        install(tools, False)
    urlopen.assert_called_once_with(BUNDLETOOL_JAR.download_url())
    assert BUNDLETOOL_JAR.installation_path(tools).read_bytes() == b"jar bytes"


def test_install_keeps_existing_jar(tmp_path):
    jar = BUNDLETOOL_JAR.installation_path(tmp_path)
    jar.write_bytes(b"old")
    with mock.patch("sys.platform", "linux"), mock.patch(
        "urllib.request.urlopen", return_value=io.BytesIO(b"new")
    ) as urlopen:
        install(tmp_path, False)
    assert urlopen.call_count == 0
    assert jar.read_bytes() == b"old"


def test_install_reinstall_replaces_jar(tmp_path):
    jar = BUNDLETOOL_JAR.installation_path(tmp_path)
    jar.write_bytes(b"old")
    with mock.patch("sys.platform", "linux"), mock.patch(
        "urllib.request.urlopen", return_value=io.BytesIO(b"new")
    ):
        install(tmp_path, True)
    assert jar.read_bytes() == b"new"


def test_install_download_failure(tmp_path):
    with mock.patch("sys.platform", "linux"), mock.patch(
        "urllib.request.urlopen", side_effect=urllib.error.URLError("offline")
    ):
        with pytest.raises(BundletoolInstallError) as info:
            install(tmp_path / "tools", False)
    assert "Failed to download `bundletool`" in str(info.value)


def test_install_tools_dir_creation_failure(tmp_path):
    blocker = tmp_path / "tools"
    blocker.write_text("not a directory")
    with mock.patch("sys.platform", "linux"), mock.patch(
        "urllib.request.urlopen", return_value=io.BytesIO(b"jar bytes")
    ):
        with pytest.raises(BundletoolInstallError) as info:
            install(blocker, False)
    assert info.value.path == blocker


def _recording_run(commands):
    def run(argv, **kwargs):
        commands.append((list(argv), kwargs))
        return mock.Mock(returncode=0)

    return run


def test_install_on_macos_uses_brew_when_missing():
    commands = []
    with mock.patch("sys.platform", "darwin"), mock.patch(
        "shutil.which", return_value=None
    ), mock.patch("subprocess.run", side_effect=_recording_run(commands)):
        result = install(None, False)
    assert result is None
    assert commands == [(["brew", "install", "bundletool"], {"check": True})]


def test_install_on_macos_skips_when_present():
    commands = []
    with mock.patch("sys.platform", "darwin"), mock.patch(
        "shutil.which", return_value="/usr/local/bin/bundletool"
    ), mock.patch("subprocess.run", side_effect=_recording_run(commands)):
        result = install(None, False)
    assert result is None
    assert commands == []


def test_install_on_macos_reinstall():
    commands = []
    with mock.patch("sys.platform", "darwin"), mock.patch(
        "shutil.which", return_value="/usr/local/bin/bundletool"
    ), mock.patch("subprocess.run", side_effect=_recording_run(commands)):
        result = install(None, True)
    assert result is None
    assert commands == [(["brew", "reinstall", "bundletool"], {"check": True})]