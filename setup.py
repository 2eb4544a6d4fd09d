import sys

from setuptools import setup, find_packages

with open("README.md", "r") as f:
    long_description = f.read()

setup_dependencies = [
    "requests>=2.20.0",
    "voluptuous>=0.11.7",
    "pyyaml>=5.4",
]

test_dependencies = [
    "pytest>=5.4.1",
    "pytest-cov>=2.8.1",
]

lint_dependencies = [
    "flake8>=3.9.0",
    "black>=20.8b1",
]

if {"lint", "flake8"}.intersection(sys.argv):
    setup_dependencies = lint_dependencies

setup(
    name="dbt-cloud-client",
    version="0.1.0",
    description="Typed Python bindings for the dbt Cloud Databricks credential API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests*",)),
    include_package_data=True,
    python_requires=">=3.7",
    install_requires=setup_dependencies,
    tests_require=test_dependencies,
    extras_require={"test": test_dependencies, "lint": lint_dependencies},
)
