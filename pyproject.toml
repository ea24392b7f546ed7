[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zonepanel"
version = "0.1.0"
description = "Framework-free request handlers for a web panel that manages PowerDNS zones, records, TSIG keys and users"
requires-python = ">=3.10"
keywords = ["dns", "powerdns", "zones", "tsig", "web", "admin"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "bcrypt",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["zonepanel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
