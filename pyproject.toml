[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "servicemgr"
version = "1.0.0"
description = "An HTTP API for registering, running and monitoring background services."
requires-python = ">=3.10"
keywords = ["service", "process", "supervisor", "monitoring", "sse", "logs"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Operating System :: Microsoft :: Windows",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "flask",
    "psutil",
    "watchdog",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
servicemgr = "servicemgr.server:main"

[tool.hatch.build.targets.wheel]
packages = ["servicemgr"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
