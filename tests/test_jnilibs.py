import os

import pytest

from droidkit.config import AndroidConfig, AppInfo
from droidkit.jnilibs import JniLibs, SymlinkLibError, jnilibs_path


@pytest.fixture
def config(tmp_path):
    app = AppInfo(name="my-app", root_dir=tmp_path, reverse_domain="com.example")
    return AndroidConfig.from_raw(app)


def test_path_is_under_project_dir(config):
    path = jnilibs_path(config, "arm64-v8a")
    assert path.name == "arm64-v8a"
    assert config.project_dir() in path.parents
    assert path.parent.name == "jniLibs"


def test_create_makes_directory(config):
    libs = JniLibs.create(config, "x86")
    assert libs.path.is_dir()
    assert libs.path == jnilibs_path(config, "x86")


def test_symlink_lib(config, tmp_path):
    lib = tmp_path / "libfoo.so"
    lib.write_bytes(b"elf")
    libs = JniLibs.create(config, "x86")
    libs.symlink_lib(lib)
    dest = libs.path / "libfoo.so"
    assert dest.is_symlink()
    assert dest.resolve() == lib.resolve()


def test_symlink_lib_replaces_existing(config, tmp_path):
    old = tmp_path / "old" / "libfoo.so"
    old.parent.mkdir()
    old.write_bytes(b"old")
    new = tmp_path / "libfoo.so"
    new.write_bytes(b"new")
    libs = JniLibs.create(config, "x86")
    libs.symlink_lib(old)
    libs.symlink_lib(new)
    assert (libs.path / "libfoo.so").read_bytes() == b"new"


def test_symlink_missing_source(config, tmp_path):
    libs = JniLibs.create(config, "x86")
    missing = tmp_path / "absent.so"
    with pytest.raises(SymlinkLibError, match="nothing exists there") as info:
        libs.symlink_lib(missing)
    assert info.value.missing == missing


def test_remove_broken_links(config, tmp_path):
    libs = JniLibs.create(config, "x86")
    good = tmp_path / "good.so"
    good.write_bytes(b"ok")
    os.symlink(good, libs.path / "good.so")
    os.symlink(tmp_path / "gone.so", libs.path / "gone.so")
    (libs.path / "plain.so").write_bytes(b"plain")
    JniLibs.remove_broken_links(config, ["x86", "arm64-v8a"])
    assert sorted(p.name for p in libs.path.iterdir()) == ["good.so", "plain.so"]


def test_remove_broken_links_without_dirs(config):
    JniLibs.remove_broken_links(config, ["x86"])
    assert not jnilibs_path(config, "x86").exists()