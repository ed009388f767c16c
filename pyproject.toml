[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "beatrelay"
version = "0.1.0"
description = "Stream WAV audio over WebSocket and relay it to clients with sliding-window tempo (BPM) estimates."
requires-python = ">=3.10"
keywords = ["websocket", "audio", "pcm", "wav", "tempo", "bpm", "msgpack", "streaming"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Analysis",
]
dependencies = [
    "websockets>=12.0",
    "msgpack>=1.0",
    "numpy>=1.24",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
]

[project.scripts]
beatrelay-relay = "beatrelay.relay:main"
beatrelay-streamer = "beatrelay.streamer:main"

[tool.hatch.build.targets.wheel]
packages = ["beatrelay"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
