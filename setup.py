from pathlib import Path

from setuptools import find_packages, setup

cwd = Path(__file__).parent
description_file = cwd / "doc" / "pypi-description.md"
if description_file.is_file():
    long_description = description_file.read_text()
else:
    long_description = ""

setup(
    name="pxu",
    version="0.1.0",
    description="Kinematics of excitations on the multi-sheeted pxu Riemann surface",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(include=["pxu", "pxu.*"]),
    install_requires=["numpy", "scipy", "matplotlib"],
    extras_require={"dev": ["pytest", "nox", "ruff", "mypy"]},
)
