# droidkit

A Python library for driving the Android toolchain when building native
libraries for Android apps.

- `droidkit.env.AndroidEnv.from_environ()` locates the Android SDK
  (`ANDROID_HOME`, falling back to `ANDROID_SDK_ROOT`) and the NDK
  (`NDK_HOME`), and checks that the NDK is at least r19.
- `droidkit.source_props` reads `source.properties` files
  (`SourceProps.from_path`) and parses revisions such as `21.3.6528147` or
  `25.0.0-beta1` (`Revision.parse`).
- `droidkit.ndk.NdkEnv` finds the NDK's compilers, `ar`, `readelf` and
  `libc++_shared.so`, and lists the shared libraries an ELF file needs
  (`required_libs`).
- `droidkit.target.Target` knows the four targets `aarch64`, `armv7`, `i686`
  and `x86_64`: their triples, ABIs and architectures. It builds the cargo
  command line for a target, runs `cargo check`/`cargo build` with the NDK
  tools set in the environment, and symlinks the built library, plus
  `libc++_shared.so` when it is needed, into the project's `jniLibs`
  directory (`droidkit.jnilibs`).
- `droidkit.apk` and `droidkit.aab` run the project's gradle wrapper to
  assemble APKs or bundle AABs, universal or split per ABI, and return the
  paths of the files built.
- `droidkit.adb` and `droidkit.device` list devices connected over adb, read
  their properties and names, install and launch the app, and follow its
  logcat output; `Device.stacktrace` pipes the device log through `ndk-stack`.
- `droidkit.emulator` lists virtual devices (`avd_list`) and starts them.
- `droidkit.bundletool` downloads the `bundletool` jar (on macOS it installs
  it with Homebrew instead) and builds its command lines.

## Installation

```
pip install droidkit
```

No third-party Python packages are needed. The parts that run tools need the
Android SDK, the NDK, cargo, and Java (for `bundletool`) to be installed. The
project must already contain a gradle wrapper.

## Usage

```python
from droidkit import apk
from droidkit.common import NoiseLevel, Profile
from droidkit.config import AndroidConfig, AppInfo, RawConfig
from droidkit.device import device_list
from droidkit.env import AndroidEnv
from droidkit.target import Target

app = AppInfo(name="my-app", root_dir="/path/to/project", reverse_domain="com.example")
config = AndroidConfig.from_raw(app, RawConfig.from_dict({"min-sdk-version": 26}))
env = AndroidEnv.from_environ()

targets = [Target.for_name("aarch64")]
for path in apk.build(config, env, NoiseLevel.POLITE, Profile.RELEASE, targets, False):
    print(path)

for device in device_list(env):
    print(device)
```

The generated project lives in `gen/android` under the app root unless
`project-dir` says otherwise. `Target.name_list()` gives the known target
names, and `Target.for_abi("arm64-v8a")` maps a device ABI back to its
target.

Errors are raised as exceptions. For example, `AndroidEnv.from_environ`
raises `AndroidEnvError` when the SDK or NDK cannot be found,
`AndroidConfig.from_raw` raises `ProjectDirInvalid` for a project directory
outside the app root or containing spaces, and `apk.build` raises `ApkError`
when gradle fails.

## What it does not do

- There is no command-line program; everything is used from Python.
- It does not generate the Android Studio project or the gradle wrapper, and
  it does not read the project's configuration files. Configuration and
  metadata are built from dictionaries (`RawConfig.from_dict`,
  `AndroidMetadata.from_dict`) that the caller supplies.
- It does not write a cargo configuration file; `Target.generate_cargo_config`
  only returns the linker and flags for one.

## Running the tests

```
pip install "droidkit[test]"
python -m pytest
```