[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "openplant"
version = "0.1.0"
description = "Wire protocol codecs, request encoding, connections, pooling and point caching for OpenPlant real-time databases"
requires-python = ">=3.10"
dependencies = []
keywords = ["openplant", "realtime database", "historian", "msgpack", "protocol", "scada"]
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
    "Topic :: Database :: Front-Ends",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["openplant"]

[tool.pytest.ini_options]
addopts = "-ra"
