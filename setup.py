"""Setup script for JobSync."""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="job-sync",
    version="1.0.0",
    author="DaDevFox",
    description="Job application tracker with guest storage and account sync",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/DaDevFox/job-track",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Topic :: Office/Business",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "fastapi>=0.110",
        ],
    },
    entry_points={
        "console_scripts": [
            "jobsync=jobsync.main:main",
        ],
    },
)
