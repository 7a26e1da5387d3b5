"""
Setup script for Dimensional Reconciliation Library.
"""

from setuptools import setup, find_packages


# Read the README file
def read_readme():
    with open("README.md", "r", encoding="utf-8") as fh:
        return fh.read()


# Read requirements
def read_requirements():
    with open("requirements.txt", "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip() and not line.startswith("#")]


setup(
    name="dimensional-reconciliation",
    version="1.0.0",
    author="Data Engineering Team",
    author_email="data-engineering@company.com",
    description="Slowly Changing Dimension reconciliation (Type 1, 2 and 3) with atomic merge into in-memory or Delta Lake dimension stores",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
        "Topic :: Scientific/Engineering :: Information Analysis",
    ],
    python_requires=">=3.8",
    install_requires=read_requirements(),
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "pytest-cov>=2.12.0",
            "pytest-mock>=3.6.0",
            "flake8>=3.9.0",
            "black>=21.0.0",
            "mypy>=0.910",
        ],
        "test": [
            "pytest>=6.0.0",
            "pytest-cov>=2.12.0",
            "pytest-mock>=3.6.0",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords="databricks, spark, delta, scd, dimensional, data-engineering, etl",
)
