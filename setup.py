"""Setup script for the Definition of Done gate."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="dod-gate",
    version="1.0.0",
    author="DoD Gate Team",
    author_email="team@example.com",
    description="Definition of Done quality gate with weighted readiness scoring and hashed receipts",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/example/dod-gate",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Quality Assurance",
        "Topic :: Software Development :: Testing",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "dod=dod_gate.cli.main:main",
        ],
    },
    include_package_data=True,
    package_data={
        "dod_gate": ["configs/*.yaml"],
    },
)
