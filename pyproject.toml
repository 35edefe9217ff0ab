[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "droidkit"
version = "0.1.0"
description = "Library for building, packaging and deploying native Android libraries: NDK discovery, targets, APK/AAB builds, adb devices and emulators."
requires-python = ">=3.10"
dependencies = []
keywords = ["android", "ndk", "adb", "gradle", "apk", "aab", "bundletool", "emulator"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["droidkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
