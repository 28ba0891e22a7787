[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dxfm"
version = "0.9.6"
description = "Six-operator FM synthesis engines, algorithm layouts, envelope geometry, theme handling and cartridge file helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["fm", "synthesis", "dx7", "sysex", "envelope", "opl", "cartridge"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dxfm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
