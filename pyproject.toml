[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zdefender"
version = "0.1.3"
description = "DDoS detection building blocks: traffic statistics, attack heuristics, anomaly scoring and distributed-attack detection."
requires-python = ">=3.10"
dependencies = []
keywords = ["ddos", "intrusion-detection", "anomaly-detection", "network-security", "traffic-analysis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Firewalls",
    "Topic :: Security",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["zdefender"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
