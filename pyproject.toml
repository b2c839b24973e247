[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "relaydns"
version = "0.1.0"
description = "A small caching UDP DNS server that answers from its cache and relays other queries to public resolvers"
requires-python = ">=3.10"
dependencies = [
    "python-dotenv",
]
keywords = ["dns", "udp", "resolver", "cache", "forwarder", "rate-limiting"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
relaydns = "relaydns.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["relaydns"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
