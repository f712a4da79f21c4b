[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "byohagent"
version = "0.1.0"
description = "Host tooling for bring-your-own-host Kubernetes nodes: Kubernetes bundle installation and cloud-init script execution"
requires-python = ">=3.10"
keywords = ["kubernetes", "cloud-init", "installer", "bootstrap", "bundle"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Installation/Setup",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
byoh-installer = "byohagent.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["byohagent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
