[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gennuser"
version = "0.1.0"
description = "Connectivity generators, run drivers and model descriptions for spiking neural network example projects"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "neuroscience",
    "spiking neural networks",
    "synapses",
    "connectivity",
    "mushroom body",
    "izhikevich",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Life",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gennuser-tools = "gennuser.tools_cli:main"
gennuser-run = "gennuser.generate_run:main"

[tool.hatch.build.targets.wheel]
packages = ["gennuser"]

[tool.pytest.ini_options]
addopts = "-ra"
