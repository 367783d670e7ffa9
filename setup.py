from setuptools import setup, find_packages

setup(
    name="bufpatch",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "bufpatch=bufpatch.cli:main",
        ],
    },
    author="Uday Kanth",
    description="Patch a live text buffer with a command's output, rewriting only the lines that changed.",
)
