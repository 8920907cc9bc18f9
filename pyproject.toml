[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "deflicker"
version = "0.1.0"
description = "Linear luminance deflickering for 16-bit image sequences"
requires-python = ">=3.10"
keywords = [
    "deflicker",
    "flicker",
    "image sequence",
    "luminance",
    "block matching",
    "motion search",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "imageio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
deflicker = "deflicker.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["deflicker"]

[tool.pytest.ini_options]
addopts = "-ra"
