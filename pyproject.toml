[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "phoenixlauncher"
version = "0.7.2"
description = "Game launcher core for Cataclysm: Dark Days Ahead: game detection, version cache, releases, soundpacks and update migration planning"
requires-python = ">=3.10"
keywords = ["cataclysm", "cdda", "launcher", "soundpack", "game"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "httpx>=0.24",
    "platformdirs>=3",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "pytest-asyncio>=0.21",
    "respx>=0.20",
]

[tool.hatch.build.targets.wheel]
packages = ["phoenixlauncher"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
